"""
Blog App URL Configuration
"""
from django.urls import path
from .views import (
    BlogStatsView,
    CommentDetailView,
    CommentLikeView,
    FeaturedPostsView,
    MyPostsView,
    MyStatsView,
    PostCommentsView,
    PostDetailView,
    PostLikeView,
    PostListCreateView,
    RelatedPostsView,
    UserCommentsView,
    UserPostsView,
)

urlpatterns = [
    # Posts
    path('posts/', PostListCreateView.as_view(), name='post-list'),
    path('posts/featured/', FeaturedPostsView.as_view(), name='post-featured'),
    path('posts/stats/', BlogStatsView.as_view(), name='post-stats'),
    path('posts/<int:post_id>/', PostDetailView.as_view(), name='post-detail'),
    path('posts/<int:post_id>/like/', PostLikeView.as_view(), name='post-like'),
    path('posts/<int:post_id>/related/', RelatedPostsView.as_view(), name='post-related'),
    path('posts/<int:post_id>/comments/', PostCommentsView.as_view(), name='post-comments'),

    # Comments
    path('comments/<int:comment_id>/', CommentDetailView.as_view(), name='comment-detail'),
    path('comments/<int:comment_id>/like/', CommentLikeView.as_view(), name='comment-like'),

    # Current user
    path('user/posts/', MyPostsView.as_view(), name='my-posts'),
    path('user/stats/', MyStatsView.as_view(), name='my-stats'),

    # Users
    path('users/<int:user_id>/posts/', UserPostsView.as_view(), name='user-posts'),
    path('users/<int:user_id>/comments/', UserCommentsView.as_view(), name='user-comments'),
]
