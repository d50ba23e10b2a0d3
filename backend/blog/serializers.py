"""
DRF Serializers
===============

Serializers handle:
1. Shape-checking of incoming data (types, choices)
2. Transformation of model instances to JSON

Field rules (lengths, required fields, thread shape) are enforced in
blog.services / blog.threads so they hold for every caller, not just HTTP.
Input serializers therefore mark every field optional and leave blank
strings through.
"""

from rest_framework import serializers
from django.contrib.auth.models import User

from .models import Comment, Post


class UserSerializer(serializers.ModelSerializer):
    """Minimal user representation for embedding in other objects."""

    class Meta:
        model = User
        fields = ['id', 'username']
        read_only_fields = fields


class PostListSerializer(serializers.ModelSerializer):
    """Feed representation - no content body."""
    author = UserSerializer(read_only=True)
    tags = serializers.SlugRelatedField(many=True, read_only=True, slug_field='name')

    class Meta:
        model = Post
        fields = [
            'id',
            'title',
            'slug',
            'excerpt',
            'cover_image',
            'author',
            'tags',
            'category',
            'status',
            'featured',
            'views',
            'likes_count',
            'comments_count',
            'read_time',
            'published_at',
            'created_at',
        ]
        read_only_fields = fields


class PostDetailSerializer(PostListSerializer):
    user_liked = serializers.SerializerMethodField()

    class Meta(PostListSerializer.Meta):
        fields = PostListSerializer.Meta.fields + [
            'content',
            'seo_title',
            'seo_description',
            'updated_at',
            'user_liked',
        ]
        read_only_fields = fields

    def get_user_liked(self, obj):
        request = self.context.get('request')
        if request is None or not request.user.is_authenticated:
            return False
        return obj.likes.filter(user=request.user).exists()


class PostWriteSerializer(serializers.Serializer):
    """
    Input for create and partial update.

    Author is taken from request.user in the view, never from input.
    """
    title = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    content = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    excerpt = serializers.CharField(required=False, allow_blank=True)
    cover_image = serializers.CharField(required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(allow_blank=True), required=False)
    category = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=Post.Status.choices, required=False)
    featured = serializers.BooleanField(required=False)
    seo_title = serializers.CharField(required=False, allow_blank=True)
    seo_description = serializers.CharField(required=False, allow_blank=True)


class ReplySerializer(serializers.ModelSerializer):
    author = UserSerializer(read_only=True)

    class Meta:
        model = Comment
        fields = [
            'id',
            'body',
            'author',
            'post',
            'parent',
            'likes_count',
            'is_edited',
            'edited_at',
            'is_deleted',
            'created_at',
        ]
        read_only_fields = fields


class CommentThreadSerializer(ReplySerializer):
    """
    Top-level comment with its visible replies.

    Expects comment.visible_replies to be set by
    blog.queries.attach_replies, so serialization issues no queries.
    """
    replies = ReplySerializer(source='visible_replies', many=True, read_only=True)

    class Meta(ReplySerializer.Meta):
        fields = ReplySerializer.Meta.fields + ['replies']
        read_only_fields = fields


class CommentWriteSerializer(serializers.Serializer):
    body = serializers.CharField(allow_blank=True, trim_whitespace=False)
    parent = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class CommentEditSerializer(serializers.Serializer):
    body = serializers.CharField(allow_blank=True, trim_whitespace=False)


class UserCommentSerializer(ReplySerializer):
    post_title = serializers.CharField(source='post.title', read_only=True)
    post_slug = serializers.CharField(source='post.slug', read_only=True)

    class Meta(ReplySerializer.Meta):
        fields = ReplySerializer.Meta.fields + ['post_title', 'post_slug']
        read_only_fields = fields


class LikeResultSerializer(serializers.Serializer):
    liked = serializers.BooleanField()
    likes_count = serializers.IntegerField()
