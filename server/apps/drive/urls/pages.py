"""Routes of the server-rendered file manager."""

from django.urls import path

from server.apps.drive.views import pages

app_name = 'drive'

urlpatterns = [
    path('', pages.index, name='index'),
    path('sign-out/', pages.sign_out, name='sign_out'),
    path('browse/', pages.browse, name='browse_root'),
    path('browse/<path:path>/', pages.browse, name='browse'),
    path('recent/', pages.recent, name='recent'),
    path('files/<str:file_id>/', pages.preview, name='preview'),
    path('items/<str:item_type>/<str:item_id>/', pages.details, name='details'),
    path('actions/upload/', pages.upload, name='upload'),
    path('actions/create-folder/', pages.create_folder, name='create_folder'),
    path('actions/rename/', pages.rename, name='rename'),
    path('actions/delete/', pages.delete, name='delete'),
    path('actions/move/', pages.move, name='move'),
]
