"""
Data Models for QuillFeed
=========================

Design Philosophy:
------------------
1. Posts carry derived fields (slug, excerpt, read_time, published_at)
   - Computed by blog.derived before the row is written
   - slug is set once, on first save, and never recomputed

2. Comments form a two-level thread via a self-referencing parent FK
   - parent must itself be top-level (enforced in blog.threads)
   - replies stay linked to their parent even after a soft delete

3. Likes use a polymorphic approach via ContentType
   - One Like row per (user, liked object); unique constraint enforced at DB level
   - likes_count on Post/Comment is the authoritative COUNT of those rows,
     rewritten after every toggle

4. comments_count is a materialized view of
   COUNT(comments WHERE post = this AND is_deleted = false)
   - Recomputed after every create/soft delete, never incremented
   - Recomputing twice yields the same answer, so duplicate triggers are harmless

Indexes Strategy:
-----------------
- post.status + post.published_at: For the published feed
- comment.post_id + comment.created_at: For fetching the thread of a post
- comment.parent_id + comment.created_at: For loading replies in order
- like.content_type + like.object_id + like.user: For uniqueness + lookup
"""

from django.db import models
from django.contrib.auth.models import User
from django.contrib.contenttypes.fields import GenericForeignKey, GenericRelation
from django.contrib.contenttypes.models import ContentType
from django.core.validators import MaxLengthValidator, MinLengthValidator
from django.utils import timezone


class Tag(models.Model):
    """A lower-cased post tag. Shared between posts."""
    name = models.CharField(max_length=50, unique=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class Post(models.Model):
    """
    A blog post.

    Status moves freely between Draft, Published and Archived; the only
    lifecycle rule is that published_at is stamped the first time the post
    becomes Published and kept from then on.
    """

    class Status(models.TextChoices):
        DRAFT = 'Draft', 'Draft'
        PUBLISHED = 'Published', 'Published'
        ARCHIVED = 'Archived', 'Archived'

    author = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='posts',
        db_index=True
    )
    title = models.CharField(
        max_length=200,
        validators=[MinLengthValidator(1)]
    )
    content = models.TextField(
        validators=[MinLengthValidator(10)]
    )
    excerpt = models.CharField(max_length=300, blank=True, default='')
    cover_image = models.CharField(max_length=500, blank=True, default='')
    tags = models.ManyToManyField(Tag, blank=True, related_name='posts')
    category = models.CharField(max_length=100, default='Other')
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT
    )
    featured = models.BooleanField(default=False)
    seo_title = models.CharField(max_length=60, blank=True, default='')
    seo_description = models.CharField(max_length=160, blank=True, default='')

    views = models.PositiveIntegerField(default=0)
    likes = GenericRelation('Like', related_query_name='post')

    # Denormalized counters - only ever written by blog.counters
    likes_count = models.PositiveIntegerField(default=0, db_index=True)
    comments_count = models.PositiveIntegerField(default=0)

    # Derived fields - see blog.derived
    slug = models.SlugField(max_length=50, unique=True, null=True, blank=True)
    read_time = models.PositiveSmallIntegerField(default=1)
    published_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['author', '-created_at'], name='post_author_created_idx'),
            models.Index(fields=['status', '-published_at'], name='post_status_published_idx'),
            models.Index(fields=['category'], name='post_category_idx'),
        ]

    def __str__(self):
        return f"{self.title[:50]} by {self.author.username}"

    @property
    def is_published(self):
        return self.status == self.Status.PUBLISHED


class Comment(models.Model):
    """
    Comment in a two-level thread.

    parent is null for top-level comments. A reply points at a top-level
    comment of the same post; replies to replies are rejected when the
    comment is created.

    Soft delete keeps the row (and its place in the parent's replies) but
    replaces the body with DELETED_COMMENT_BODY and freezes edits and likes.
    """
    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name='comments',
        db_index=True
    )
    author = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='replies',
        db_index=True
    )
    body = models.TextField(
        validators=[MinLengthValidator(1), MaxLengthValidator(1000)]
    )

    likes = GenericRelation('Like', related_query_name='comment')
    likes_count = models.PositiveIntegerField(default=0)

    is_edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']  # Oldest first within a thread
        indexes = [
            models.Index(fields=['post', 'created_at'], name='comment_post_created_idx'),
            models.Index(fields=['parent', 'created_at'], name='comment_parent_created_idx'),
            models.Index(fields=['author', '-created_at'], name='comment_author_created_idx'),
        ]

    def __str__(self):
        return f"Comment by {self.author.username} on {self.post_id}"

    @property
    def is_top_level(self):
        return self.parent_id is None


class Like(models.Model):
    """
    Polymorphic like entry using Django's ContentType framework.

    CONCURRENCY STRATEGY:
    - Unique constraint (user, content_type, object_id) enforced at DB level
    - Toggles lock the liked row with select_for_update, then delete-or-insert
    - IntegrityError on insert means the same user's like already landed
    """
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='likes'
    )

    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.CASCADE
    )
    object_id = models.PositiveBigIntegerField()
    content_object = GenericForeignKey('content_type', 'object_id')

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'content_type', 'object_id'],
                name='unique_like_per_user_per_object'
            )
        ]
        indexes = [
            models.Index(fields=['content_type', 'object_id'], name='like_target_idx'),
        ]

    def __str__(self):
        return f"{self.user.username} liked {self.content_type.model} {self.object_id}"


# ============================================================================
# CONTENT CONSTANTS
# ============================================================================
DELETED_COMMENT_BODY = '[This comment has been deleted]'
DEFAULT_CATEGORY = 'Other'
