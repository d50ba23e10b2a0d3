"""
Tests for derived post fields. Pure functions - no database.
"""

from datetime import timedelta

from django.test import SimpleTestCase
from django.utils import timezone

from blog.derived import (
    compute_derived_fields,
    compute_read_time,
    make_excerpt,
    make_slug,
    resolve_published_at,
    strip_markup,
)
from blog.models import Post


class SlugTestCase(SimpleTestCase):

    def test_title_with_punctuation(self):
        self.assertEqual(make_slug('Hello World!'), 'hello-world')

    def test_whitespace_runs_collapse_to_one_hyphen(self):
        self.assertEqual(make_slug('Django   and\tREST'), 'django-and-rest')

    def test_truncated_to_50_characters(self):
        slug = make_slug('word ' * 30)
        self.assertEqual(len(slug), 50)
        self.assertTrue(slug.startswith('word-word-'))

    def test_title_without_usable_characters_gives_none(self):
        """Keeps empty slugs from colliding on the unique index."""
        self.assertIsNone(make_slug('!!!???'))

    def test_digits_are_kept(self):
        self.assertEqual(make_slug('Top 10 Tips'), 'top-10-tips')


class ReadTimeTestCase(SimpleTestCase):

    def test_450_words_in_markup_is_3_minutes(self):
        content = '<p>' + 'word ' * 450 + '</p>'
        self.assertEqual(compute_read_time(content), 3)

    def test_exactly_200_words_is_1_minute(self):
        self.assertEqual(compute_read_time('word ' * 200), 1)

    def test_201_words_rounds_up(self):
        self.assertEqual(compute_read_time('word ' * 201), 2)

    def test_minimum_is_one_minute(self):
        self.assertEqual(compute_read_time(''), 1)
        self.assertEqual(compute_read_time('<p></p>'), 1)


class ExcerptTestCase(SimpleTestCase):

    def test_markup_is_stripped(self):
        self.assertEqual(strip_markup('<p>Hello <b>there</b></p>'), 'Hello there')
        self.assertEqual(make_excerpt('<p>Short text</p>'), 'Short text...')

    def test_cut_at_150_characters_plus_ellipsis(self):
        excerpt = make_excerpt('<div>' + 'x' * 400 + '</div>')
        self.assertEqual(excerpt, 'x' * 150 + '...')


class PublishedAtTestCase(SimpleTestCase):

    def test_draft_has_no_published_at(self):
        self.assertIsNone(resolve_published_at(Post.Status.DRAFT, None))

    def test_first_publish_stamps_now(self):
        before = timezone.now()
        published_at = resolve_published_at(Post.Status.PUBLISHED, None)
        self.assertGreaterEqual(published_at, before)

    def test_existing_value_is_never_overwritten(self):
        earlier = timezone.now() - timedelta(days=3)
        self.assertEqual(resolve_published_at(Post.Status.PUBLISHED, earlier), earlier)
        self.assertEqual(resolve_published_at(Post.Status.ARCHIVED, earlier), earlier)


class ComputeDerivedFieldsTestCase(SimpleTestCase):

    def test_supplied_excerpt_is_kept(self):
        derived = compute_derived_fields(
            title='Hello World!',
            content='<p>' + 'word ' * 450 + '</p>',
            status=Post.Status.DRAFT,
            excerpt='My own summary',
        )
        self.assertEqual(derived.slug, 'hello-world')
        self.assertEqual(derived.excerpt, 'My own summary')
        self.assertEqual(derived.read_time, 3)
        self.assertIsNone(derived.published_at)

    def test_missing_excerpt_is_generated(self):
        derived = compute_derived_fields(
            title='Hello',
            content='<p>Some body text</p>',
            status=Post.Status.PUBLISHED,
        )
        self.assertEqual(derived.excerpt, 'Some body text...')
        self.assertIsNotNone(derived.published_at)
