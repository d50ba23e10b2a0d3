"""
Post Lifecycle Service
======================

Create / update / delete / like / view operations on posts.

TRANSACTION STRATEGY:
--------------------
Every mutation of an existing post runs inside transaction.atomic() and
loads the row with select_for_update(). That makes the row the unit of
isolation: two edits, or an edit and a like toggle, on the same post are
serialized by the database instead of overwriting each other.

Updates write back only the columns they changed (save(update_fields=...)),
so a title edit never rewrites likes_count or comments_count.

DERIVED FIELDS:
---------------
- create: slug, excerpt, read_time and published_at are all computed
- update: read_time (and excerpt, if still empty) on content change,
          published_at on status change
- slug is written once: on create, or on the first title edit of a post
  whose title produced no slug. An existing slug never follows the title.

CASCADE DELETE:
---------------
Comments are deleted before the post, both inside the same transaction.
If the transaction fails nothing is removed; retrying is safe because
deleting zero remaining comments is a no-op.
"""

import logging

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F

from . import queries
from .counters import LikeResult, toggle_like
from .derived import (
    compute_derived_fields,
    compute_read_time,
    make_excerpt,
    make_slug,
    resolve_published_at,
)
from .exceptions import Forbidden, NotFound, ValidationError
from .models import DEFAULT_CATEGORY, Comment, Post, Tag
from .permissions import (
    ensure_owner_or_admin,
    is_admin,
    is_authenticated,
    require_actor,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({
    'title',
    'content',
    'excerpt',
    'cover_image',
    'tags',
    'category',
    'status',
    'featured',
    'seo_title',
    'seo_description',
})

# Required text fields; anything but a string is rejected up front
TEXT_FIELDS = ('title', 'content')

# Optional text fields where None means "empty"
BLANKABLE_FIELDS = ('excerpt', 'cover_image', 'seo_title', 'seo_description')

TAG_MAX_LENGTH = 50


def _normalize_tags(tags):
    if isinstance(tags, str) or not isinstance(tags, (list, tuple, set)):
        raise ValidationError({'tags': 'Tags must be a list of strings.'})

    names = []
    for tag in tags:
        if not isinstance(tag, str):
            raise ValidationError({'tags': 'Tags must be a list of strings.'})
        name = tag.strip().lower()
        if not name or name in names:
            continue
        if len(name) > TAG_MAX_LENGTH:
            raise ValidationError({
                'tags': f'Tags cannot exceed {TAG_MAX_LENGTH} characters.'
            })
        names.append(name)
    return names


def _normalize_fields(fields):
    """Reject unknown keys, trim title/category, normalize tags."""
    unknown = sorted(set(fields) - EDITABLE_FIELDS)
    if unknown:
        raise ValidationError({name: 'This field cannot be set.' for name in unknown})

    for name in TEXT_FIELDS:
        if name in fields and not isinstance(fields[name], str):
            raise ValidationError({name: 'This field must be a string.'})

    data = dict(fields)
    if isinstance(data.get('title'), str):
        data['title'] = data['title'].strip()
    if 'category' in data:
        data['category'] = (data['category'] or '').strip() or DEFAULT_CATEGORY
    for name in BLANKABLE_FIELDS:
        if name in data and data[name] is None:
            data[name] = ''
    if 'tags' in data:
        data['tags'] = _normalize_tags(data['tags'] or [])
    return data


def _full_clean(post):
    try:
        post.full_clean()
    except DjangoValidationError as exc:
        raise ValidationError(exc.message_dict) from exc


def _set_tags(post, names):
    post.tags.set([Tag.objects.get_or_create(name=name)[0] for name in names])


def refresh_derived_fields(post, changed) -> set:
    """
    Recompute the derived fields governed by the changed field names.

    - title:   slug, only while the post has none
    - content: read_time, and excerpt if it is empty
    - status:  published_at (stamped once)

    Returns the names of the derived fields that were written.
    """
    derived = set()

    if 'title' in changed and post.slug is None:
        post.slug = make_slug(post.title or '')
        derived.add('slug')

    if 'content' in changed:
        post.read_time = compute_read_time(post.content or '')
        derived.add('read_time')
        if not post.excerpt:
            post.excerpt = make_excerpt(post.content or '')
            derived.add('excerpt')

    if 'status' in changed:
        post.published_at = resolve_published_at(post.status, post.published_at)
        derived.add('published_at')

    return derived


def get_post(post_id, lock=False) -> Post:
    queryset = Post.objects.select_for_update() if lock else Post.objects
    try:
        return queryset.get(pk=post_id)
    except Post.DoesNotExist:
        raise NotFound('Post not found.') from None


def create_post(author, fields) -> Post:
    """
    Create a post owned by author.

    Required: title (1-200 chars), content (>= 10 chars).
    Defaults: status Draft, category "Other".
    """
    require_actor(author)
    data = _normalize_fields(fields)
    tags = data.pop('tags', [])

    if data.get('featured') and not is_admin(author):
        raise Forbidden('Only admins can feature posts.')

    post = Post(author=author, **data)
    derived = compute_derived_fields(
        title=post.title or '',
        content=post.content or '',
        status=post.status,
        excerpt=post.excerpt,
    )
    post.slug = derived.slug
    post.excerpt = derived.excerpt
    post.read_time = derived.read_time
    post.published_at = derived.published_at

    _full_clean(post)

    try:
        with transaction.atomic():
            post.save()
            _set_tags(post, tags)
    except IntegrityError as exc:
        # Lost a race for the same slug against a concurrent create.
        raise ValidationError({'slug': 'A post with this slug already exists.'}) from exc

    logger.info(f"Post {post.pk} created by user {author.pk} as {post.status}")
    return post


def update_post(actor, post_id, patch) -> Post:
    """
    Partial update: only keys present in patch are applied.

    Only the author or an admin may edit. featured can only be changed
    by an admin.
    """
    with transaction.atomic():
        post = get_post(post_id, lock=True)
        ensure_owner_or_admin(actor, post.author_id)

        data = _normalize_fields(patch)
        tags = data.pop('tags', None)

        if 'featured' in data and data['featured'] != post.featured and not is_admin(actor):
            raise Forbidden('Only admins can feature posts.')

        for field, value in data.items():
            setattr(post, field, value)
        changed = set(data)
        changed |= refresh_derived_fields(post, changed)

        _full_clean(post)

        if changed:
            try:
                with transaction.atomic():
                    post.save(update_fields=sorted(changed | {'updated_at'}))
            except IntegrityError as exc:
                raise ValidationError({'slug': 'A post with this slug already exists.'}) from exc
        if tags is not None:
            _set_tags(post, tags)

    logger.info(f"Post {post.pk} updated by user {actor.pk}: {sorted(changed)}")
    return post


def delete_post(actor, post_id) -> int:
    """
    Delete a post and every comment that references it.

    Returns the number of comments removed.
    """
    with transaction.atomic():
        post = get_post(post_id, lock=True)
        ensure_owner_or_admin(actor, post.author_id)

        # Comments first: no reader may see comments pointing at a missing post.
        _, removed = Comment.objects.filter(post_id=post.pk).delete()
        post.delete()

    comment_count = removed.get(Comment._meta.label, 0)
    logger.info(f"Post {post_id} deleted by user {actor.pk} with {comment_count} comments")
    return comment_count


def toggle_post_like(actor, post_id) -> LikeResult:
    """Like the post if the actor has not yet, otherwise unlike it."""
    require_actor(actor)
    with transaction.atomic():
        post = get_post(post_id, lock=True)
        return toggle_like(actor, post)


def increment_view(post_id, viewer_is_author=False) -> bool:
    """
    Count one view of a published post.

    Best effort: a failure is logged and reported as False, never raised.
    Authors viewing their own post and unpublished posts are not counted.
    """
    if viewer_is_author:
        return False
    try:
        updated = Post.objects.filter(
            pk=post_id,
            status=Post.Status.PUBLISHED
        ).update(views=F('views') + 1)
    except DatabaseError:
        logger.warning(f"Could not record view for post {post_id}", exc_info=True)
        return False
    return updated > 0


def get_post_for_viewer(viewer, post_id) -> Post:
    """
    Fetch a post for display and record the view.

    Unpublished posts are only visible to their author and admins; anyone
    else gets NotFound, as if the post did not exist.
    """
    post = Post.objects.select_related('author').filter(pk=post_id).first()
    if post is None:
        raise NotFound('Post not found.')

    viewer_is_author = is_authenticated(viewer) and viewer.pk == post.author_id
    if not post.is_published and not (viewer_is_author or is_admin(viewer)):
        raise NotFound('Post not found.')

    if increment_view(post.pk, viewer_is_author=viewer_is_author):
        post.views += 1
    return post


def list_author_posts(actor, status=None):
    """The actor's own posts in every status, optionally filtered by one."""
    require_actor(actor)
    if status and status not in Post.Status.values:
        raise ValidationError({
            'status': f"Must be one of: {', '.join(Post.Status.values)}."
        })
    return queries.get_author_posts(actor.pk, status)


def author_stats(actor) -> dict:
    require_actor(actor)
    return queries.get_author_stats(actor.pk)


def list_user_published_posts(user_id) -> dict:
    """Public profile listing; inactive or unknown users are NotFound."""
    if not User.objects.filter(pk=user_id, is_active=True).exists():
        raise NotFound('User not found.')
    return queries.get_user_published_posts(user_id)
