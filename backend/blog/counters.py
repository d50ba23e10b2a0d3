"""
Engagement Counters
===================

Keeps likes_count and comments_count equal to the collections they
summarize.

COUNTER STRATEGY:
-----------------
Problem: a running total drifts as soon as one increment or decrement is
missed or applied twice (retried request, cascade, admin edit).

Solution: never increment. After every write that can change a
collection, COUNT the collection and write the result back with a
single-column UPDATE.

    comments_count = COUNT(Comment WHERE post = p AND is_deleted = false)
    likes_count    = COUNT(Like WHERE content_type = ct AND object_id = pk)

Recomputing is idempotent: running it twice leaves the same value. The
cost is one extra read per write.

WRITE DISCIPLINE:
-----------------
These functions only ever write the counter column, via
QuerySet.update(). They never call save() on the instance, so a
concurrent edit of title/body/status cannot be clobbered by a counter
refresh (and updated_at is left alone).

LIKE TOGGLE:
------------
Naive: read likes -> check membership -> write likes back. Two actors
toggling at once lose one of the writes.

Ours: the caller locks the liked row (select_for_update) inside
transaction.atomic(); we then "delete my Like row if present, else
insert it" and recount. The unique constraint on
(user, content_type, object_id) is the backstop: if an insert still
collides, that user's like is already there and the outcome is "liked".
"""

from dataclasses import dataclass

from django.contrib.contenttypes.models import ContentType
from django.db import IntegrityError, transaction

from .models import Comment, Like, Post


@dataclass
class LikeResult:
    """Outcome of a toggle: the actor's new membership and the new count."""
    liked: bool
    likes_count: int


def refresh_comments_count(post_id: int) -> int:
    """Recount the visible comments of a post and store the total."""
    count = Comment.objects.filter(post_id=post_id, is_deleted=False).count()
    Post.objects.filter(pk=post_id).update(comments_count=count)
    return count


def refresh_likes_count(target) -> int:
    """Recount the likes of a Post or Comment and store the total."""
    count = target.likes.count()
    type(target).objects.filter(pk=target.pk).update(likes_count=count)
    target.likes_count = count
    return count


def toggle_like(user, target) -> LikeResult:
    """
    Add the user's like to target if absent, remove it if present.

    Must run inside transaction.atomic() with target's row locked by the
    caller, so the recount sees every committed toggle before ours.
    """
    content_type = ContentType.objects.get_for_model(target)

    removed, _ = Like.objects.filter(
        user=user,
        content_type=content_type,
        object_id=target.pk
    ).delete()

    if not removed:
        try:
            with transaction.atomic():
                Like.objects.create(
                    user=user,
                    content_type=content_type,
                    object_id=target.pk
                )
        except IntegrityError:
            # Same user's like committed between our delete and insert.
            pass

    return LikeResult(liked=not removed, likes_count=refresh_likes_count(target))
