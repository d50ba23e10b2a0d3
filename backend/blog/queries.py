"""
Read Queries
============

Query functions for the feed and comment threads that avoid N+1 problems.

COMMENT THREADS:
----------------
Naive approach for a page of 20 top-level comments:
    for comment in top_level:                 # 1 query
        print(comment.author.username)        # 20 queries
        for reply in comment.replies.all():   # 20 more queries
            ...

Our approach:
1. Fetch ONE page of visible top-level comments (select_related author)
2. Fetch ALL visible replies of that page in ONE query
3. Attach replies to their parents in Python, single pass

Threads are two levels deep, so two queries cover the whole page
regardless of how many replies there are.
"""

import math

from django.db.models import Count, Q, Sum

from .models import Comment, Post, Tag

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

POST_SORTS = {
    'latest': ('-published_at', '-pk'),
    'oldest': ('published_at', 'pk'),
    'popular': ('-views', '-likes_count', '-pk'),
    'trending': ('-likes_count', '-comments_count', '-views', '-pk'),
}


def clamp_page(page, page_size) -> tuple[int, int]:
    page = max(int(page or 1), 1)
    page_size = min(max(int(page_size or DEFAULT_PAGE_SIZE), 1), MAX_PAGE_SIZE)
    return page, page_size


def pagination_meta(page: int, page_size: int, total: int) -> dict:
    total_pages = math.ceil(total / page_size)
    return {
        'current_page': page,
        'total_pages': total_pages,
        'total_comments': total,
        'has_next': page < total_pages,
        'has_prev': page > 1,
    }


def visible_comments():
    return Comment.objects.filter(is_deleted=False).select_related('author')


def attach_replies(top_level: list[Comment], replies: list[Comment]) -> list[Comment]:
    """
    Set comment.visible_replies on every top-level comment.

    Algorithm: O(n) with a lookup dict {id -> comment}. Replies keep the
    order they were given in (creation order).
    """
    by_id = {}
    for comment in top_level:
        comment.visible_replies = []
        by_id[comment.id] = comment

    for reply in replies:
        parent = by_id.get(reply.parent_id)
        if parent is not None:
            parent.visible_replies.append(reply)

    return top_level


def get_comment_threads(post_id: int, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> dict:
    """
    One page of a post's thread: visible top-level comments, newest first,
    each carrying its visible replies oldest first.

    QUERIES: 3 (count, page of top-level, replies)
    """
    page, page_size = clamp_page(page, page_size)
    top_level_qs = visible_comments().filter(post_id=post_id, parent__isnull=True)

    total = top_level_qs.count()
    offset = (page - 1) * page_size
    top_level = list(top_level_qs.order_by('-created_at', '-pk')[offset:offset + page_size])

    replies = []
    if top_level:
        replies = list(
            visible_comments()
            .filter(parent_id__in=[comment.id for comment in top_level])
            .order_by('created_at', 'pk')
        )

    return {
        'comments': attach_replies(top_level, replies),
        'pagination': pagination_meta(page, page_size, total),
    }


def get_user_comments(user_id: int, page: int = 1, page_size: int = 10) -> dict:
    """A user's visible comments across all posts, newest first."""
    page, page_size = clamp_page(page, page_size)
    queryset = visible_comments().filter(author_id=user_id).select_related('post')

    total = queryset.count()
    offset = (page - 1) * page_size
    comments = list(queryset.order_by('-created_at', '-pk')[offset:offset + page_size])

    return {
        'comments': comments,
        'pagination': pagination_meta(page, page_size, total),
    }


def get_published_posts(category=None, tags=None, author_id=None, sort='latest'):
    """
    Published posts, filtered and sorted. Returns a queryset so the view's
    paginator can slice it.
    """
    queryset = (
        Post.objects
        .filter(status=Post.Status.PUBLISHED)
        .select_related('author')
        .prefetch_related('tags')
    )

    if category:
        queryset = queryset.filter(category__iexact=category)

    if tags:
        queryset = queryset.filter(tags__name__in=[tag.strip().lower() for tag in tags]).distinct()

    if author_id:
        queryset = queryset.filter(author_id=author_id)

    return queryset.order_by(*POST_SORTS.get(sort, POST_SORTS['latest']))


def get_featured_posts(limit: int = 5) -> list[Post]:
    return list(
        Post.objects
        .filter(status=Post.Status.PUBLISHED, featured=True)
        .select_related('author')
        .prefetch_related('tags')
        .order_by('-published_at', '-pk')[:limit]
    )


def get_related_posts(post: Post, limit: int = 4) -> list[Post]:
    """Published posts sharing a tag, the category or the author."""
    tag_ids = list(post.tags.values_list('id', flat=True))
    return list(
        Post.objects
        .filter(status=Post.Status.PUBLISHED)
        .exclude(pk=post.pk)
        .filter(
            Q(tags__id__in=tag_ids) |
            Q(category=post.category) |
            Q(author_id=post.author_id)
        )
        .distinct()
        .select_related('author')
        .prefetch_related('tags')
        .order_by('-published_at', '-pk')[:limit]
    )


def get_blog_stats() -> dict:
    """Counts over published posts: posts, distinct authors, distinct tags."""
    published = Post.objects.filter(status=Post.Status.PUBLISHED)
    totals = published.aggregate(
        posts=Count('id'),
        authors=Count('author', distinct=True),
    )
    totals['tags'] = Tag.objects.filter(posts__status=Post.Status.PUBLISHED).distinct().count()
    return totals


def get_author_posts(author_id: int, status=None):
    """
    Every post of one author, drafts and archived included, newest first.
    Only ever served to the author themselves.
    """
    queryset = (
        Post.objects
        .filter(author_id=author_id)
        .select_related('author')
        .prefetch_related('tags')
    )
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at', '-pk')


def get_author_stats(author_id: int) -> dict:
    """
    Dashboard totals for one author.

    views only counts published posts; comments counts the author's own
    visible comments across all posts.
    """
    published = Q(status=Post.Status.PUBLISHED)
    totals = Post.objects.filter(author_id=author_id).aggregate(
        total=Count('id'),
        published=Count('id', filter=published),
        drafts=Count('id', filter=Q(status=Post.Status.DRAFT)),
        views=Sum('views', filter=published),
    )
    totals['views'] = totals['views'] or 0
    totals['comments'] = Comment.objects.filter(author_id=author_id, is_deleted=False).count()
    return totals


def get_user_published_posts(user_id: int) -> dict:
    """
    A user's public profile listing: published posts, latest first, plus
    totals over them. 'posts' is a queryset for the view's paginator.
    """
    posts = (
        Post.objects
        .filter(author_id=user_id, status=Post.Status.PUBLISHED)
        .select_related('author')
        .prefetch_related('tags')
        .order_by('-published_at', '-pk')
    )
    totals = posts.aggregate(
        total_posts=Count('id'),
        total_views=Sum('views'),
        total_likes=Sum('likes_count'),
    )
    return {
        'posts': posts,
        'stats': {
            'total_posts': totals['total_posts'],
            'total_views': totals['total_views'] or 0,
            'total_likes': totals['total_likes'] or 0,
        },
    }
