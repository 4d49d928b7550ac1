from django.conf import settings
from django.contrib import admin
from django.contrib.staticfiles.views import serve as static_serve
from django.urls import include, path, re_path

urlpatterns = [
    path("djadmin/", admin.site.urls),
    path("accounts/", include("django.contrib.auth.urls")),
    path("api/", include("ledger.urls")),
]

if settings.DEBUG:
    urlpatterns += [
        re_path(r"^static/(?P<path>.*)$", static_serve),
    ]
