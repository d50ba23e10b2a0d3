from django.contrib.auth.models import User

from blog.models import Post
from blog.services import create_post

LONG_CONTENT = 'Content for a test post. ' * 10


def make_user(username, **extra):
    return User.objects.create_user(username, f'{username}@test.com', 'pass', **extra)


def make_post(author, title='Test Post', status=Post.Status.PUBLISHED, **fields):
    fields.setdefault('content', LONG_CONTENT)
    return create_post(author, {'title': title, 'status': status, **fields})
