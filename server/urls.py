"""
Main URL mapping configuration file.

Include other URLConfs from external apps using method `include()`.

It is also a good practice to keep a single URL to root index page.
"""

from django.urls import include, path

urlpatterns = [
    # JSON API consumed by the browser front end:
    path('api/', include('server.apps.drive.urls.api', namespace='api')),

    # Server-rendered file manager:
    path('', include('server.apps.drive.urls.pages', namespace='drive')),
]
