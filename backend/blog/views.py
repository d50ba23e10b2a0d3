"""
DRF Views
=========

Thin HTTP layer over blog.services and blog.threads.

Views parse input, call one service function and serialize the result.
Domain failures (NotFound, Forbidden, ValidationError, InvalidState,
InvalidParent) propagate to blog.exceptions.custom_exception_handler,
which maps them to status codes.
"""

from rest_framework import permissions, status
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from . import queries, services, threads
from .serializers import (
    CommentEditSerializer,
    CommentThreadSerializer,
    CommentWriteSerializer,
    LikeResultSerializer,
    PostDetailSerializer,
    PostListSerializer,
    PostWriteSerializer,
    ReplySerializer,
    UserCommentSerializer,
)


class FeedPagination(PageNumberPagination):
    """
    Page-number pagination for the published feed.

    ?page=N&limit=M, limit capped at 100.
    """
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = queries.MAX_PAGE_SIZE


def _int_param(request, name, default):
    try:
        return int(request.query_params.get(name, default))
    except (TypeError, ValueError):
        return default


class PostListCreateView(APIView):
    """
    GET  /api/posts/   published posts (?category, ?tags=a,b, ?author, ?sort)
    POST /api/posts/   create a post (authenticated)
    """
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get(self, request):
        tags = request.query_params.get('tags')
        queryset = queries.get_published_posts(
            category=request.query_params.get('category'),
            tags=tags.split(',') if tags else None,
            author_id=_int_param(request, 'author', None),
            sort=request.query_params.get('sort', 'latest'),
        )
        paginator = FeedPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response(PostListSerializer(page, many=True).data)

    def post(self, request):
        serializer = PostWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        post = services.create_post(request.user, serializer.validated_data)
        return Response(
            PostDetailSerializer(post, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )


class FeaturedPostsView(APIView):
    """GET /api/posts/featured/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        posts = queries.get_featured_posts()
        return Response(PostListSerializer(posts, many=True).data)


class BlogStatsView(APIView):
    """GET /api/posts/stats/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response(queries.get_blog_stats())


class PostDetailView(APIView):
    """
    GET    /api/posts/<id>/   post detail; counts a view
    PATCH  /api/posts/<id>/   partial update (author or admin)
    DELETE /api/posts/<id>/   delete post and its comments (author or admin)
    """
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get(self, request, post_id):
        post = services.get_post_for_viewer(request.user, post_id)
        return Response(PostDetailSerializer(post, context={'request': request}).data)

    def patch(self, request, post_id):
        serializer = PostWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        post = services.update_post(request.user, post_id, serializer.validated_data)
        return Response(PostDetailSerializer(post, context={'request': request}).data)

    def delete(self, request, post_id):
        services.delete_post(request.user, post_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PostLikeView(APIView):
    """POST /api/posts/<id>/like/   toggle the caller's like"""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, post_id):
        result = services.toggle_post_like(request.user, post_id)
        return Response(LikeResultSerializer(result).data)


class RelatedPostsView(APIView):
    """GET /api/posts/<id>/related/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, post_id):
        post = services.get_post(post_id)
        posts = queries.get_related_posts(post)
        return Response(PostListSerializer(posts, many=True).data)


class PostCommentsView(APIView):
    """
    GET  /api/posts/<id>/comments/   thread page (?page, ?limit)
    POST /api/posts/<id>/comments/   add a comment or reply

    Body:
    {
        "body": "Comment text",
        "parent": 123  // optional, for replies
    }
    """
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get(self, request, post_id):
        result = threads.list_comments(
            post_id,
            page=_int_param(request, 'page', 1),
            page_size=_int_param(request, 'limit', queries.DEFAULT_PAGE_SIZE),
        )
        return Response({
            'comments': CommentThreadSerializer(result['comments'], many=True).data,
            'pagination': result['pagination'],
        })

    def post(self, request, post_id):
        serializer = CommentWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = threads.create_comment(
            request.user,
            post_id,
            serializer.validated_data['body'],
            parent_id=serializer.validated_data.get('parent'),
        )
        return Response(ReplySerializer(comment).data, status=status.HTTP_201_CREATED)


class CommentDetailView(APIView):
    """
    PATCH  /api/comments/<id>/   edit (author only)
    DELETE /api/comments/<id>/   soft delete (author or admin)
    """
    permission_classes = [permissions.IsAuthenticated]

    def patch(self, request, comment_id):
        serializer = CommentEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = threads.edit_comment(request.user, comment_id, serializer.validated_data['body'])
        return Response(ReplySerializer(comment).data)

    def delete(self, request, comment_id):
        threads.soft_delete_comment(request.user, comment_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CommentLikeView(APIView):
    """POST /api/comments/<id>/like/   toggle the caller's like"""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, comment_id):
        result = threads.toggle_comment_like(request.user, comment_id)
        return Response(LikeResultSerializer(result).data)


class UserCommentsView(APIView):
    """GET /api/users/<id>/comments/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        result = threads.list_user_comments(
            user_id,
            page=_int_param(request, 'page', 1),
            page_size=_int_param(request, 'limit', 10),
        )
        return Response({
            'comments': UserCommentSerializer(result['comments'], many=True).data,
            'pagination': result['pagination'],
        })


class MyPostsView(APIView):
    """GET /api/user/posts/   the caller's posts in every status (?status, ?page, ?limit)"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        queryset = services.list_author_posts(
            request.user,
            status=request.query_params.get('status'),
        )
        paginator = FeedPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response(PostListSerializer(page, many=True).data)


class MyStatsView(APIView):
    """GET /api/user/stats/   total, published, drafts, views, comments"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(services.author_stats(request.user))


class UserPostsView(APIView):
    """GET /api/users/<id>/posts/   a user's published posts plus their totals"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        result = services.list_user_published_posts(user_id)
        paginator = FeedPagination()
        page = paginator.paginate_queryset(result['posts'], request, view=self)
        response = paginator.get_paginated_response(PostListSerializer(page, many=True).data)
        response.data['stats'] = result['stats']
        return response
