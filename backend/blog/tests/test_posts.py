"""
Tests for the post lifecycle.

Focus areas:
1. Derived fields on create/update (slug stability, publishedAt once)
2. Owner/admin checks
3. Like toggles and likes_count == |likes|
4. Cascade delete
5. Best-effort view counting
"""

from datetime import timedelta
from unittest.mock import patch

from django.contrib.contenttypes.models import ContentType
from django.db import DatabaseError
from django.db.models.query import QuerySet
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from blog.exceptions import Forbidden, NotFound, ValidationError
from blog.models import Like, Post
from blog.services import (
    create_post,
    delete_post,
    get_post_for_viewer,
    increment_view,
    toggle_post_like,
    update_post,
)
from blog.threads import create_comment, get_comment, toggle_comment_like

from .helpers import LONG_CONTENT, make_post, make_user


class CreatePostTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')

    def test_defaults_and_derived_fields(self):
        post = create_post(self.author, {
            'title': '  Hello World!  ',
            'content': '<p>' + 'word ' * 450 + '</p>',
        })

        post.refresh_from_db()
        self.assertEqual(post.title, 'Hello World!')
        self.assertEqual(post.status, Post.Status.DRAFT)
        self.assertEqual(post.category, 'Other')
        self.assertEqual(post.slug, 'hello-world')
        self.assertEqual(post.read_time, 3)
        self.assertTrue(post.excerpt.endswith('...'))
        self.assertIsNone(post.published_at)
        self.assertEqual(post.likes_count, 0)
        self.assertEqual(post.comments_count, 0)

    def test_create_published_sets_published_at(self):
        post = make_post(self.author, status=Post.Status.PUBLISHED)
        self.assertIsNotNone(post.published_at)

    def test_missing_title_and_short_content(self):
        with self.assertRaises(ValidationError) as ctx:
            create_post(self.author, {'content': 'too short'})

        self.assertIn('title', ctx.exception.errors)
        self.assertIn('content', ctx.exception.errors)
        self.assertFalse(Post.objects.exists())

    def test_title_longer_than_200_characters(self):
        with self.assertRaises(ValidationError) as ctx:
            create_post(self.author, {'title': 'x' * 201, 'content': LONG_CONTENT})
        self.assertIn('title', ctx.exception.errors)

    def test_non_string_title_and_content_are_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_post(self.author, {'title': 123, 'content': LONG_CONTENT})
        self.assertIn('title', ctx.exception.errors)

        with self.assertRaises(ValidationError) as ctx:
            create_post(self.author, {'title': 'Title', 'content': ['not', 'text']})
        self.assertIn('content', ctx.exception.errors)
        self.assertFalse(Post.objects.exists())

    def test_unknown_fields_are_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_post(self.author, {
                'title': 'Title',
                'content': LONG_CONTENT,
                'likes_count': 99,
            })
        self.assertIn('likes_count', ctx.exception.errors)

    def test_tags_are_trimmed_lowercased_and_deduplicated(self):
        post = make_post(self.author, tags=[' Django ', 'django', 'API', ''])
        self.assertEqual(sorted(post.tags.values_list('name', flat=True)), ['api', 'django'])

    def test_duplicate_slug_is_a_validation_error(self):
        make_post(self.author, title='Same Title')
        with self.assertRaises(ValidationError) as ctx:
            make_post(self.author, title='Same title!')
        self.assertIn('slug', ctx.exception.errors)

    def test_titles_without_slug_characters_can_repeat(self):
        first = make_post(self.author, title='!!!')
        second = make_post(self.author, title='???')
        self.assertIsNone(first.slug)
        self.assertIsNone(second.slug)

    def test_anonymous_actor_is_forbidden(self):
        with self.assertRaises(Forbidden):
            create_post(None, {'title': 'Title', 'content': LONG_CONTENT})

    def test_only_admin_can_feature(self):
        with self.assertRaises(Forbidden):
            make_post(self.author, featured=True)

        admin = make_user('admin', is_staff=True)
        self.assertTrue(make_post(admin, featured=True).featured)


class UpdatePostTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')
        self.other = make_user('other')
        self.admin = make_user('admin', is_staff=True)
        self.post = make_post(self.author, title='Hello World!', status=Post.Status.DRAFT)

    def test_slug_is_stable_under_title_edit(self):
        post = update_post(self.author, self.post.id, {'title': 'A Completely New Title'})

        post.refresh_from_db()
        self.assertEqual(post.title, 'A Completely New Title')
        self.assertEqual(post.slug, 'hello-world')

    def test_missing_slug_is_filled_by_first_title_edit(self):
        post = make_post(self.author, title='!!!')
        self.assertIsNone(post.slug)

        update_post(self.author, post.id, {'title': 'Hello Again'})
        post.refresh_from_db()
        self.assertEqual(post.slug, 'hello-again')

        update_post(self.author, post.id, {'title': 'Renamed Later'})
        post.refresh_from_db()
        self.assertEqual(post.slug, 'hello-again')

    def test_filled_slug_collision_is_a_validation_error(self):
        post = make_post(self.author, title='???')

        with self.assertRaises(ValidationError) as ctx:
            update_post(self.author, post.id, {'title': 'Hello World'})

        self.assertIn('slug', ctx.exception.errors)
        post.refresh_from_db()
        self.assertEqual(post.title, '???')
        self.assertIsNone(post.slug)

    def test_content_change_recomputes_read_time_and_keeps_excerpt(self):
        original_excerpt = self.post.excerpt
        post = update_post(self.author, self.post.id, {'content': 'word ' * 650})

        post.refresh_from_db()
        self.assertEqual(post.read_time, 4)
        self.assertEqual(post.excerpt, original_excerpt)

    def test_content_change_generates_excerpt_when_empty(self):
        Post.objects.filter(pk=self.post.pk).update(excerpt='')
        post = update_post(self.author, self.post.id, {'content': '<p>Fresh content here</p>'})
        self.assertEqual(post.excerpt, 'Fresh content here...')

    def test_published_at_is_set_once(self):
        post = update_post(self.author, self.post.id, {'status': Post.Status.PUBLISHED})
        first_published_at = post.published_at
        self.assertIsNotNone(first_published_at)

        update_post(self.author, self.post.id, {'status': Post.Status.ARCHIVED})
        post = update_post(self.author, self.post.id, {'status': Post.Status.PUBLISHED})

        post.refresh_from_db()
        self.assertEqual(post.published_at, first_published_at)

    def test_partial_update_leaves_other_fields(self):
        update_post(self.author, self.post.id, {'category': 'Tutorial'})

        self.post.refresh_from_db()
        self.assertEqual(self.post.category, 'Tutorial')
        self.assertEqual(self.post.title, 'Hello World!')
        self.assertEqual(self.post.status, Post.Status.DRAFT)

    def test_update_does_not_clobber_counters(self):
        stale = Post.objects.get(pk=self.post.pk)
        toggle_post_like(self.other, self.post.id)

        # Simulates an editor holding an old copy while a like lands
        with patch('blog.services.get_post', return_value=stale):
            update_post(self.author, self.post.id, {'title': 'Edited'})

        self.post.refresh_from_db()
        self.assertEqual(self.post.title, 'Edited')
        self.assertEqual(self.post.likes_count, 1)

    def test_invalid_patch_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            update_post(self.author, self.post.id, {'title': '   '})
        self.assertIn('title', ctx.exception.errors)

        with self.assertRaises(ValidationError):
            update_post(self.author, self.post.id, {'status': 'Deleted'})

    def test_non_owner_is_forbidden(self):
        with self.assertRaises(Forbidden):
            update_post(self.other, self.post.id, {'title': 'Hijacked'})

    def test_admin_may_edit_and_feature(self):
        post = update_post(self.admin, self.post.id, {'title': 'Moderated', 'featured': True})
        self.assertEqual(post.title, 'Moderated')
        self.assertTrue(post.featured)

    def test_author_cannot_feature(self):
        with self.assertRaises(Forbidden):
            update_post(self.author, self.post.id, {'featured': True})

    def test_missing_post(self):
        with self.assertRaises(NotFound):
            update_post(self.author, 999999, {'title': 'Nope'})

    def test_tags_are_replaced(self):
        update_post(self.author, self.post.id, {'tags': ['one', 'two']})
        update_post(self.author, self.post.id, {'tags': ['Two', 'three']})
        self.assertEqual(sorted(self.post.tags.values_list('name', flat=True)), ['three', 'two'])


class DeletePostTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')
        self.reader = make_user('reader')
        self.post = make_post(self.author)

    def test_delete_cascades_to_comments_and_likes(self):
        top = create_comment(self.reader, self.post.id, 'Top level')
        reply = create_comment(self.author, self.post.id, 'Reply', parent_id=top.id)
        toggle_comment_like(self.author, top.id)
        toggle_post_like(self.reader, self.post.id)

        removed = delete_post(self.author, self.post.id)

        self.assertEqual(removed, 2)
        self.assertFalse(Post.objects.filter(pk=self.post.pk).exists())
        for comment_id in (top.id, reply.id):
            with self.assertRaises(NotFound):
                get_comment(comment_id)
        self.assertFalse(Like.objects.exists())

    def test_admin_may_delete(self):
        admin = make_user('admin', is_staff=True)
        delete_post(admin, self.post.id)
        self.assertFalse(Post.objects.exists())

    def test_non_owner_is_forbidden(self):
        with self.assertRaises(Forbidden):
            delete_post(self.reader, self.post.id)
        self.assertTrue(Post.objects.filter(pk=self.post.pk).exists())

    def test_second_delete_is_not_found(self):
        delete_post(self.author, self.post.id)
        with self.assertRaises(NotFound):
            delete_post(self.author, self.post.id)


class PostLikeTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')
        self.user1 = make_user('user1')
        self.user2 = make_user('user2')
        self.post = make_post(self.author)

    def test_toggle_twice_restores_original_state(self):
        first = toggle_post_like(self.user1, self.post.id)
        second = toggle_post_like(self.user1, self.post.id)

        self.assertTrue(first.liked)
        self.assertEqual(first.likes_count, 1)
        self.assertFalse(second.liked)
        self.assertEqual(second.likes_count, 0)
        self.assertFalse(self.post.likes.filter(user=self.user1).exists())

    def test_likes_count_matches_like_rows(self):
        toggle_post_like(self.user1, self.post.id)
        toggle_post_like(self.user2, self.post.id)
        toggle_post_like(self.author, self.post.id)
        toggle_post_like(self.user2, self.post.id)

        self.post.refresh_from_db()
        self.assertEqual(self.post.likes_count, 2)
        self.assertEqual(self.post.likes_count, self.post.likes.count())

    def test_like_entry_records_timestamp(self):
        before = timezone.now()
        toggle_post_like(self.user1, self.post.id)
        like = self.post.likes.get(user=self.user1)
        self.assertGreaterEqual(like.created_at, before)

    def test_missing_post(self):
        with self.assertRaises(NotFound):
            toggle_post_like(self.user1, 999999)

    def test_anonymous_is_forbidden(self):
        with self.assertRaises(Forbidden):
            toggle_post_like(None, self.post.id)


class ConcurrentLikeTestCase(TransactionTestCase):
    """
    Real commits: the duplicate row and the unique-constraint violation
    hit the database the same way two overlapping requests would.
    """

    def setUp(self):
        self.author = make_user('author')
        self.fan = make_user('fan')
        self.post = make_post(self.author)

    def test_duplicate_insert_resolves_as_liked(self):
        content_type = ContentType.objects.get_for_model(Post)
        real_delete = QuerySet.delete

        def delete_then_rival_insert(queryset):
            # The fan's other request commits its like right after our delete
            result = real_delete(queryset)
            if queryset.model is Like:
                Like.objects.create(
                    user=self.fan,
                    content_type=content_type,
                    object_id=self.post.pk
                )
            return result

        with patch.object(QuerySet, 'delete', autospec=True, side_effect=delete_then_rival_insert):
            result = toggle_post_like(self.fan, self.post.id)

        self.assertTrue(result.liked)
        self.assertEqual(result.likes_count, 1)
        self.post.refresh_from_db()
        self.assertEqual(self.post.likes_count, 1)
        self.assertEqual(self.post.likes.count(), 1)


class LikeCleanupTestCase(TestCase):
    """Like rows removed outside a toggle still leave likes_count exact."""

    def setUp(self):
        self.author = make_user('author')
        self.fan = make_user('fan')
        self.post = make_post(self.author)
        self.comment = create_comment(self.author, self.post.id, 'Thanks for reading')

        toggle_post_like(self.fan, self.post.id)
        toggle_post_like(self.author, self.post.id)
        toggle_comment_like(self.fan, self.comment.id)

    def test_deleting_a_user_recounts_what_they_liked(self):
        self.fan.delete()

        self.post.refresh_from_db()
        self.comment.refresh_from_db()
        self.assertEqual(self.post.likes_count, 1)
        self.assertEqual(self.post.likes_count, self.post.likes.count())
        self.assertEqual(self.comment.likes_count, 0)

    def test_deleting_like_rows_directly_recounts(self):
        Like.objects.filter(user=self.author).delete()

        self.post.refresh_from_db()
        self.assertEqual(self.post.likes_count, 1)

    def test_deleting_the_author_removes_their_liked_post(self):
        self.author.delete()

        self.assertFalse(Post.objects.exists())
        self.assertFalse(Like.objects.exists())


class ViewCountTestCase(TestCase):

    def setUp(self):
        self.author = make_user('author')
        self.reader = make_user('reader')
        self.post = make_post(self.author)

    def test_published_post_view_is_counted(self):
        self.assertTrue(increment_view(self.post.id))
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 1)

    def test_author_view_is_skipped(self):
        self.assertFalse(increment_view(self.post.id, viewer_is_author=True))
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 0)

    def test_draft_view_is_skipped(self):
        draft = make_post(self.author, title='Draft', status=Post.Status.DRAFT)
        self.assertFalse(increment_view(draft.id))

    def test_storage_failure_is_logged_not_raised(self):
        with self.assertLogs('blog.services', level='WARNING') as logs:
            with patch.object(Post.objects, 'filter', side_effect=DatabaseError('down')):
                self.assertFalse(increment_view(self.post.id))
        self.assertIn(f'post {self.post.id}', logs.output[0])

    def test_get_post_for_viewer_counts_reader_only(self):
        post = get_post_for_viewer(self.reader, self.post.id)
        self.assertEqual(post.views, 1)

        post = get_post_for_viewer(self.author, self.post.id)
        self.assertEqual(post.views, 1)

        get_post_for_viewer(None, self.post.id)
        self.post.refresh_from_db()
        self.assertEqual(self.post.views, 2)

    def test_draft_is_hidden_from_other_readers(self):
        draft = make_post(self.author, title='Draft', status=Post.Status.DRAFT)

        with self.assertRaises(NotFound):
            get_post_for_viewer(self.reader, draft.id)
        with self.assertRaises(NotFound):
            get_post_for_viewer(None, draft.id)

        self.assertEqual(get_post_for_viewer(self.author, draft.id).pk, draft.pk)
        admin = make_user('admin', is_staff=True)
        self.assertEqual(get_post_for_viewer(admin, draft.id).pk, draft.pk)


class ArchivedPostTestCase(TestCase):
    """Republishing keeps the first publication date."""

    def test_archive_and_republish(self):
        author = make_user('author')
        post = make_post(author, status=Post.Status.PUBLISHED)
        backdated = timezone.now() - timedelta(days=30)
        Post.objects.filter(pk=post.pk).update(published_at=backdated)

        update_post(author, post.id, {'status': Post.Status.ARCHIVED})
        update_post(author, post.id, {'status': Post.Status.PUBLISHED})

        post.refresh_from_db()
        self.assertEqual(post.published_at, backdated)
