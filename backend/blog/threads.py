"""
Comment Thread Service
======================

Create / edit / soft-delete / like comments, and list a post's thread.

THREAD SHAPE:
-------------
Two levels only: top-level comments and their replies. A reply's parent
must exist, belong to the same post, be top-level itself and not be
deleted; anything else is InvalidParent.

SOFT DELETE:
------------
A deleted comment keeps its row and its place in the parent's replies.
Its body is replaced with DELETED_COMMENT_BODY, edits and likes are
refused, and list_comments filters it out.

COMMENT COUNT:
--------------
post.comments_count is recomputed by the post_save receiver in
blog.signals whenever a comment is created or its is_deleted flag is
written (see blog.counters.refresh_comments_count). The recount happens
inside the same transaction as the triggering write.
"""

import logging

from django.db import transaction
from django.utils import timezone

from . import queries
from .counters import LikeResult, toggle_like
from .exceptions import InvalidParent, InvalidState, NotFound, ValidationError
from .models import DELETED_COMMENT_BODY, Comment, Post
from .permissions import ensure_owner, ensure_owner_or_admin, require_actor

logger = logging.getLogger(__name__)

COMMENT_MAX_LENGTH = 1000


def _clean_body(body) -> str:
    if not isinstance(body, str) or not body.strip():
        raise ValidationError({'body': 'Comment content is required.'})
    body = body.strip()
    if len(body) > COMMENT_MAX_LENGTH:
        raise ValidationError({
            'body': f'Comment cannot exceed {COMMENT_MAX_LENGTH} characters.'
        })
    return body


def get_comment(comment_id, lock=False) -> Comment:
    queryset = Comment.objects.select_for_update() if lock else Comment.objects
    try:
        return queryset.get(pk=comment_id)
    except Comment.DoesNotExist:
        raise NotFound('Comment not found.') from None


def _resolve_parent(post, parent_id):
    parent = Comment.objects.filter(pk=parent_id).first()
    if parent is None or parent.post_id != post.pk:
        raise InvalidParent()
    if not parent.is_top_level:
        raise InvalidParent('Replies can only be added to top-level comments.')
    if parent.is_deleted:
        raise InvalidParent('Cannot reply to a deleted comment.')
    return parent


def list_comments(post_id, page=1, page_size=queries.DEFAULT_PAGE_SIZE) -> dict:
    """Visible top-level comments of a post, newest first, with their replies."""
    if not Post.objects.filter(pk=post_id).exists():
        raise NotFound('Post not found.')
    return queries.get_comment_threads(post_id, page, page_size)


def create_comment(actor, post_id, body, parent_id=None) -> Comment:
    """
    Comment on a published post, or reply to one of its top-level comments.

    Failure order: NotFound (post), InvalidState (not published),
    InvalidParent (bad reply target), ValidationError (body).
    """
    require_actor(actor)

    post = Post.objects.filter(pk=post_id).first()
    if post is None:
        raise NotFound('Post not found.')
    if not post.is_published:
        raise InvalidState('Cannot comment on unpublished posts.')

    parent = _resolve_parent(post, parent_id) if parent_id is not None else None
    body = _clean_body(body)

    with transaction.atomic():
        comment = Comment.objects.create(
            post=post,
            author=actor,
            parent=parent,
            body=body,
        )

    return comment


def edit_comment(actor, comment_id, body) -> Comment:
    """Only the author may edit, and only while the comment is not deleted."""
    with transaction.atomic():
        comment = get_comment(comment_id, lock=True)
        ensure_owner(actor, comment.author_id)
        if comment.is_deleted:
            raise InvalidState('Cannot edit deleted comment.')

        comment.body = _clean_body(body)
        comment.is_edited = True
        comment.edited_at = timezone.now()
        comment.save(update_fields=['body', 'is_edited', 'edited_at', 'updated_at'])

    return comment


def soft_delete_comment(actor, comment_id) -> Comment:
    """
    Mark a comment deleted (author or admin). Deleting twice is a no-op;
    deleted_at keeps the time of the first delete.
    """
    with transaction.atomic():
        comment = get_comment(comment_id, lock=True)
        ensure_owner_or_admin(actor, comment.author_id)

        if not comment.is_deleted:
            comment.is_deleted = True
            comment.deleted_at = timezone.now()
            comment.body = DELETED_COMMENT_BODY
            comment.save(update_fields=['is_deleted', 'deleted_at', 'body', 'updated_at'])
            logger.info(f"Comment {comment.pk} on post {comment.post_id} deleted by user {actor.pk}")

    return comment


def toggle_comment_like(actor, comment_id) -> LikeResult:
    require_actor(actor)
    with transaction.atomic():
        comment = get_comment(comment_id, lock=True)
        if comment.is_deleted:
            raise InvalidState('Cannot like deleted comment.')
        return toggle_like(actor, comment)


def list_user_comments(user_id, page=1, page_size=10) -> dict:
    return queries.get_user_comments(user_id, page, page_size)
