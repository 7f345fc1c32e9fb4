"""
Django admin configuration for the marketplace models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import (
    Chat,
    Favorite,
    Message,
    NotificationEvent,
    Product,
    RehearsalRoom,
    Review,
    Sale,
    User,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with the avatar and timestamps.
    """

    list_display = [
        'username',
        'email',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Profile'), {
            'fields': ('email', 'avatar')
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('username', 'email', 'password1', 'password2'),
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login', 'date_joined']

    date_hierarchy = 'created_at'

    list_per_page = 25

    def get_readonly_fields(self, request, obj=None):
        if obj:
            return self.readonly_fields
        return []


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin interface for Product. Soft-deleted products are listed too."""

    list_display = [
        'id',
        'display_name',
        'owner',
        'category',
        'price',
        'sold',
        'is_soft_deleted',
        'created_at',
    ]

    list_filter = [
        'category',
        'sold',
        'is_soft_deleted',
        'created_at',
    ]

    search_fields = [
        'type',
        'brand',
        'model',
        'owner__email',
        'owner__username',
    ]

    readonly_fields = ['sold_at', 'deleted_at', 'created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('owner', 'category', 'type', 'brand', 'model', 'description')
        }),
        (_('Pricing & Details'), {
            'fields': ('price', 'location', 'condition', 'year', 'image_urls')
        }),
        (_('Lifecycle'), {
            'fields': ('sold', 'sold_at', 'is_soft_deleted', 'deleted_at')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def get_queryset(self, request):
        return Product.all_objects.select_related('owner')


@admin.register(RehearsalRoom)
class RehearsalRoomAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'owner', 'type', 'payment_type', 'price', 'rented', 'created_at']
    list_filter = ['type', 'payment_type', 'rented']
    search_fields = ['name', 'address', 'location', 'owner__username']
    readonly_fields = ['rented_at', 'created_at', 'updated_at']
    ordering = ['-created_at']
    list_per_page = 25


class MessageInline(admin.TabularInline):
    model = Message
    extra = 0
    fields = ['sender', 'content', 'is_read', 'created_at']
    readonly_fields = ['created_at']
    ordering = ['created_at']


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ['id', 'buyer', 'seller', 'product', 'room', 'deleted_by_buyer', 'deleted_by_seller', 'updated_at']
    list_filter = ['deleted_by_buyer', 'deleted_by_seller']
    search_fields = ['buyer__username', 'seller__username']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['-updated_at']
    list_per_page = 25
    inlines = [MessageInline]


@admin.register(Favorite)
class FavoriteAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'product', 'room', 'created_at']
    search_fields = ['user__username', 'user__email']
    readonly_fields = ['created_at']
    ordering = ['-created_at']
    list_per_page = 50


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    """Admin interface for Sale model."""

    list_display = [
        'id',
        'product',
        'seller',
        'buyer',
        'status',
        'cancel_reason',
        'created_at',
        'completed_at',
    ]

    list_filter = [
        'status',
        'cancel_reason',
        'created_at',
        'completed_at',
    ]

    search_fields = [
        'buyer__email',
        'buyer__username',
        'seller__email',
        'seller__username',
    ]

    readonly_fields = ['created_at', 'updated_at', 'completed_at', 'cancelled_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('product', 'seller', 'buyer')
        }),
        (_('Status'), {
            'fields': ('status', 'cancel_reason', 'completed_at', 'cancelled_at')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """Admin interface for Review model."""

    list_display = [
        'id',
        'reviewer',
        'reviewee',
        'sale',
        'rating',
        'created_at',
    ]

    list_filter = [
        'rating',
        'created_at',
    ]

    search_fields = [
        'reviewer__email',
        'reviewer__username',
        'reviewee__email',
        'reviewee__username',
        'content',
    ]

    readonly_fields = ['created_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25


@admin.register(NotificationEvent)
class NotificationEventAdmin(admin.ModelAdmin):
    list_display = ['id', 'kind', 'recipient', 'sale', 'chat', 'status', 'attempts', 'next_attempt_at', 'processed_at']
    list_filter = ['kind', 'status']
    search_fields = ['recipient__email', 'recipient__username', 'last_error']
    readonly_fields = ['created_at', 'processed_at']
    ordering = ['-created_at']
    list_per_page = 50
