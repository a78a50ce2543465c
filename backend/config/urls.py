"""
URL configuration for backend project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include, re_path
from backend.catalog.views import serve_upload

admin.site.site_header = "Inventory Management Admin Panel"
admin.site.site_title = "Inventory Management Admin Portal"
admin.site.index_title = "Welcome to the Inventory Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('backend.catalog.urls')),
    re_path(r'^uploads/(?P<path>.*)$', serve_upload, name='uploads'),
]
