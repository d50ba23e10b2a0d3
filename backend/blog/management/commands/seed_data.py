"""
Management command to seed the database with sample data.

Usage: python manage.py seed_data

Everything goes through the lifecycle services, so derived fields and
counters come out exactly as they would from real traffic.
"""

import random
from django.core.management.base import BaseCommand
from django.contrib.auth.models import User

from blog.models import Comment, Like, Post, Tag
from blog.services import create_post, toggle_post_like
from blog.threads import create_comment, toggle_comment_like


class Command(BaseCommand):
    help = 'Seed the database with sample data for testing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--users',
            type=int,
            default=10,
            help='Number of users to create'
        )
        parser.add_argument(
            '--posts',
            type=int,
            default=20,
            help='Number of posts to create'
        )
        parser.add_argument(
            '--comments',
            type=int,
            default=100,
            help='Number of comments to create'
        )
        parser.add_argument(
            '--seed',
            type=int,
            default=None,
            help='Random seed for reproducible data'
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding'
        )

    def handle(self, *args, **options):
        self.random = random.Random(options['seed'])

        if options['clear']:
            self.stdout.write('Clearing existing data...')
            Like.objects.all().delete()
            Comment.objects.all().delete()
            Post.objects.all().delete()
            Tag.objects.all().delete()
            User.objects.filter(is_superuser=False).delete()

        self.stdout.write('Creating users...')
        users = self._create_users(options['users'])

        self.stdout.write('Creating posts...')
        posts = self._create_posts(users, options['posts'])

        self.stdout.write('Creating comments...')
        comments = self._create_comments(users, posts, options['comments'])

        self.stdout.write('Creating likes...')
        likes = self._create_likes(users, posts, comments)

        self.stdout.write(self.style.SUCCESS(
            f'Successfully created:\n'
            f'  - {len(users)} users\n'
            f'  - {len(posts)} posts\n'
            f'  - {len(comments)} comments\n'
            f'  - {likes} likes'
        ))

    def _create_users(self, count):
        users = []
        for i in range(count):
            username = f'user{i+1}'
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(
                    username=username,
                    email=f'{username}@example.com',
                    password='password123'
                )
            users.append(user)
        return users

    def _create_posts(self, users, count):
        posts = []
        titles = [
            "Getting started with",
            "Lessons learned from",
            "A practical guide to",
            "Why I stopped using",
            "Notes on",
            "Deep dive:",
        ]
        topics = ["Django", "PostgreSQL", "caching", "testing", "deployment", "API design"]
        paragraphs = [
            "Lorem ipsum dolor sit amet, consectetur adipiscing elit. Sed do eiusmod tempor incididunt ut labore et dolore magna aliqua.",
            "I've been working on this for a while and wanted to share my thoughts with everyone reading.",
            "Here's what I learned after years of experience in this field.",
            "This might be controversial, but I think we need to discuss this more openly.",
        ]

        for i in range(count):
            topic = self.random.choice(topics)
            body = ''.join(
                f'<p>{self.random.choice(paragraphs)}</p>'
                for _ in range(self.random.randint(2, 12))
            )
            post = create_post(self.random.choice(users), {
                'title': f"{self.random.choice(titles)} {topic} #{i+1}",
                'content': body,
                'tags': [topic.lower(), self.random.choice(topics).lower()],
                'category': self.random.choice(['Tutorial', 'Opinion', 'Other']),
                # Mostly published so comments can be attached
                'status': self.random.choice([Post.Status.PUBLISHED] * 4 + [Post.Status.DRAFT]),
            })
            posts.append(post)
        return posts

    def _create_comments(self, users, posts, count):
        comments = []
        comment_texts = [
            "Great point! I totally agree.",
            "Hmm, I'm not sure about this...",
            "Thanks for sharing!",
            "Can you elaborate on this?",
            "This is exactly what I was looking for.",
            "Interesting take, but have you considered...",
        ]
        published = [post for post in posts if post.is_published]
        if not published:
            return comments

        for _ in range(count):
            post = self.random.choice(published)

            # 30% chance of being a reply to an existing top-level comment
            parent_id = None
            candidates = [c for c in comments if c.post_id == post.id and c.is_top_level]
            if candidates and self.random.random() < 0.3:
                parent_id = self.random.choice(candidates).id

            comments.append(create_comment(
                self.random.choice(users),
                post.id,
                self.random.choice(comment_texts),
                parent_id=parent_id,
            ))
        return comments

    def _create_likes(self, users, posts, comments):
        total = 0
        for post in posts:
            for liker in self.random.sample(users, k=len(users) // 2):
                if liker.id != post.author_id:
                    total += toggle_post_like(liker, post.id).liked

        for comment in comments:
            if self.random.random() < 0.3:
                for liker in self.random.sample(users, k=min(3, len(users))):
                    if liker.id != comment.author_id:
                        total += toggle_comment_like(liker, comment.id).liked
        return total
