"""
Django Signals for keeping comments_count and likes_count in sync.

The receivers recompute the count (blog.counters.refresh_comments_count)
instead of adding or subtracting one, so a signal that fires twice, or a
path that skips one, cannot make the counter drift.

IMPORTANT: Signals do NOT fire on:
- bulk_create()
- bulk_update()
- QuerySet.update()

QuerySet.delete() does send post_delete for each row, which is how the
cascade in blog.services.delete_post and admin deletions are covered.
Like toggles recount in blog.counters directly. Like rows removed any
other way (the liking user is deleted, an admin deletes the row) are
recounted by sync_likes_on_delete.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .counters import refresh_comments_count, refresh_likes_count
from .models import Comment, Like


@receiver(post_save, sender=Comment)
def sync_count_on_save(sender, instance, created, update_fields=None, **kwargs):
    """
    Recount when a comment is created or its deleted flag is written.

    Plain edits (body only) cannot change the visible count and are skipped.
    """
    if created or update_fields is None or 'is_deleted' in update_fields:
        refresh_comments_count(instance.post_id)


@receiver(post_delete, sender=Comment)
def sync_count_on_delete(sender, instance, **kwargs):
    refresh_comments_count(instance.post_id)


@receiver(post_delete, sender=Like)
def sync_likes_on_delete(sender, instance, **kwargs):
    """
    Recount the liked object when a Like row goes away outside a toggle:
    the liking user was deleted, or an admin removed the row.

    content_object is None when the liked post or comment is itself
    being deleted; there is nothing left to recount then.
    """
    target = instance.content_object
    if target is not None:
        refresh_likes_count(target)
