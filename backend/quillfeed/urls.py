"""
QuillFeed URL Configuration
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def api_root(request):
    """Root endpoint with API information."""
    return JsonResponse({
        'message': 'QuillFeed API Server',
        'version': '1.0',
        'endpoints': {
            'posts': '/api/posts/',
            'post': '/api/posts/<id>/',
            'comments': '/api/posts/<id>/comments/',
            'comment': '/api/comments/<id>/',
            'stats': '/api/posts/stats/',
            'my_posts': '/api/user/posts/',
            'user_posts': '/api/users/<id>/posts/',
        },
        'admin': '/admin/',
    })


urlpatterns = [
    path('', api_root, name='api-root'),
    path('admin/', admin.site.urls),
    path('api/', include('blog.urls')),
]
