# backend/sitecfg/urls.py

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    # 1) Vues "admin custom" en premier (confirmation, progression des jobs)
    path("admin/reference-actions/", include("refactions.urls")),

    # 2) Puis l'admin Django (qui a un catch-all)
    path("admin/", admin.site.urls),
]
