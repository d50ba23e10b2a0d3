"""
Django Admin Configuration for Blog Models

Admin writes go through the same lifecycle code as the API:
- Post saves recompute derived fields and never rewrite the counters
- Comments are soft-deleted by an action; hard delete and edits are off
- Like rows may be deleted; blog.signals recounts the liked object
"""
from django.contrib import admin, messages

from . import services, threads
from .counters import refresh_comments_count
from .models import Comment, Like, Post, Tag

# Fields the lifecycle derives on first save
POST_CREATE_FIELDS = {'title', 'content', 'status'}


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ['name']
    search_fields = ['name']


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ['title', 'author', 'status', 'featured', 'views',
                    'likes_count', 'comments_count', 'published_at']
    list_filter = ['status', 'featured', 'category', 'created_at']
    search_fields = ['title', 'content', 'author__username']
    readonly_fields = ['slug', 'read_time', 'published_at', 'views',
                       'likes_count', 'comments_count', 'created_at', 'updated_at']
    actions = ['recount_comments']

    def save_model(self, request, obj, form, change):
        changed = set(form.changed_data) if change else set(POST_CREATE_FIELDS)
        derived = services.refresh_derived_fields(obj, changed)

        if not change:
            obj.save()
            return

        # Only the columns the form touched: a like or comment that lands
        # while the page is open must not be overwritten.
        concrete = {field.name for field in obj._meta.concrete_fields}
        update_fields = (set(form.changed_data) & concrete) | derived | {'updated_at'}
        obj.save(update_fields=sorted(update_fields))

    @admin.action(description='Recount comments')
    def recount_comments(self, request, queryset):
        for post_id in queryset.values_list('id', flat=True):
            refresh_comments_count(post_id)


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    """
    Read-only view of comments plus a soft-delete action.

    Hard delete would cascade to other users' replies, and editing the
    body is reserved to the author (and frozen once deleted).
    """
    list_display = ['id', 'post', 'author', 'parent', 'likes_count',
                    'is_edited', 'is_deleted', 'created_at']
    list_filter = ['is_deleted', 'is_edited', 'created_at']
    search_fields = ['body', 'author__username']
    actions = ['soft_delete']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description='Soft delete selected comments')
    def soft_delete(self, request, queryset):
        deleted = 0
        for comment in queryset.filter(is_deleted=False):
            threads.soft_delete_comment(request.user, comment.pk)
            deleted += 1
        self.message_user(request, f"{deleted} comment(s) deleted.", messages.SUCCESS)


@admin.register(Like)
class LikeAdmin(admin.ModelAdmin):
    list_display = ['user', 'content_type', 'object_id', 'created_at']
    list_filter = ['content_type', 'created_at']
    search_fields = ['user__username']

    def has_add_permission(self, request):
        # Likes are only created through the toggle services
        return False

    def has_change_permission(self, request, obj=None):
        return False
