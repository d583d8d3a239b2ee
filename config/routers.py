"""
DRF router shared by the app URLconfs.

DefaultRouter registers the 'drf_format_suffix' converter each time its
format suffix patterns are built, which fails once several routers exist.
"""

from rest_framework.routers import DefaultRouter


class SafeDefaultRouter(DefaultRouter):
    """
    DefaultRouter without format suffix patterns or an API root view.

    Each router is mounted at its resource's own prefix and registered with
    an empty prefix, where a root view would collide with the list route.
    """
    include_format_suffixes = False
    include_root_view = False
