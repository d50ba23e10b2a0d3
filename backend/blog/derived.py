"""
Derived Post Fields
===================

Pure functions that compute the stored-but-not-supplied fields of a post:

    slug          - from title, assigned once on first save
    read_time     - minutes at 200 words/minute, at least 1
    excerpt       - first 150 characters of the text, only if none given
    published_at  - stamped the first time status becomes Published

Nothing here touches the database. blog.services decides WHEN each
function runs (create vs. partial update); this module only decides WHAT
the value is.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.utils import timezone

from .models import Post

WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 150
EXCERPT_SUFFIX = '...'
SLUG_MAX_LENGTH = 50

_MARKUP_RE = re.compile(r'<[^>]*>')
_SLUG_DISALLOWED_RE = re.compile(r'[^a-z0-9\s]')
_WHITESPACE_RE = re.compile(r'\s+')


@dataclass(frozen=True)
class DerivedFields:
    slug: Optional[str]
    excerpt: str
    read_time: int
    published_at: Optional[datetime]


def strip_markup(content: str) -> str:
    """Remove anything that looks like a tag: <p>, </b>, <img src=...>."""
    return _MARKUP_RE.sub('', content)


def make_slug(title: str) -> Optional[str]:
    """
    "Hello World!" -> "hello-world"

    Lower-case, drop everything outside [a-z0-9] and whitespace, turn each
    whitespace run into one hyphen, cut at 50 characters. A title with no
    usable characters gives None so it does not collide with other
    empty slugs on the unique index.
    """
    slug = _SLUG_DISALLOWED_RE.sub('', title.lower())
    slug = _WHITESPACE_RE.sub('-', slug)[:SLUG_MAX_LENGTH]
    return slug or None


def compute_read_time(content: str) -> int:
    words = strip_markup(content).split()
    return max(1, math.ceil(len(words) / WORDS_PER_MINUTE))


def make_excerpt(content: str) -> str:
    return strip_markup(content)[:EXCERPT_LENGTH] + EXCERPT_SUFFIX


def resolve_published_at(status: str, existing: Optional[datetime]) -> Optional[datetime]:
    # Set exactly once; later transitions never overwrite it.
    if status == Post.Status.PUBLISHED and existing is None:
        return timezone.now()
    return existing


def compute_derived_fields(
    title: str,
    content: str,
    status: str,
    excerpt: str = '',
    published_at: Optional[datetime] = None,
) -> DerivedFields:
    """Derived values for a post that is being saved for the first time."""
    return DerivedFields(
        slug=make_slug(title),
        excerpt=excerpt or make_excerpt(content),
        read_time=compute_read_time(content),
        published_at=resolve_published_at(status, published_at),
    )
