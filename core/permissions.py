"""
Custom permission classes for the Gear marketplace API.
"""

from rest_framework import permissions


class IsOwnerOrReadOnly(permissions.BasePermission):
    """
    Object-level permission for listings: anyone may read,
    only the owner may modify or delete.

    Usage:
        class ProductDetailView(generics.RetrieveUpdateDestroyAPIView):
            permission_classes = [IsAuthenticatedOrReadOnly, IsOwnerOrReadOnly]
    """

    message = 'Only the owner of this listing can modify it.'

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True

        return obj.owner_id == request.user.id

