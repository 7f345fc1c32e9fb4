"""
URL configuration for the gear_marketplace project.

Every API route lives under /api/. JWT access tokens are issued at login
and refreshed with rotation at /api/token/refresh/.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenVerifyView

from core.views import (
    UserRegistrationView,
    LoginView,
    LogoutView,
    CustomTokenRefreshView,
    UserProfileView,
    PublicProfileView,
    UserUsernameView,
    UserReviewsView,
    UserSoldProductsView,
    ProductListCreateView,
    ProductDetailView,
    ProductTransactionView,
    ProductBuyersView,
    ProductActiveSaleView,
    RoomListCreateView,
    RoomDetailView,
    RoomMarkRentedView,
    ChatListOpenView,
    ChatDetailView,
    ChatMessagesView,
    FavoriteListView,
    FavoriteToggleView,
    FavoriteStatusView,
    SaleCreateView,
    MySalesView,
    SaleConfirmView,
    SaleDeclineView,
    SaleWithdrawView,
    SaleReviewsView,
    ReviewCreateView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register/', UserRegistrationView.as_view(), name='user_register'),
    path('api/auth/login/', LoginView.as_view(), name='user_login'),
    path('api/auth/logout/', LogoutView.as_view(), name='user_logout'),
    path('api/auth/profile/', UserProfileView.as_view(), name='user_profile'),

    # JWT endpoints
    path('api/token/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('api/token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    # Public user pages
    path('api/users/<int:pk>/', PublicProfileView.as_view(), name='user_public_profile'),
    path('api/users/<int:pk>/username/', UserUsernameView.as_view(), name='user_username'),
    path('api/users/<int:pk>/reviews/', UserReviewsView.as_view(), name='user_reviews'),
    path('api/users/<int:pk>/sold-products/', UserSoldProductsView.as_view(), name='user_sold_products'),

    # Product endpoints
    path('api/products/', ProductListCreateView.as_view(), name='product_list'),
    path('api/products/<int:pk>/', ProductDetailView.as_view(), name='product_detail'),
    path('api/products/<int:pk>/transaction/', ProductTransactionView.as_view(), name='product_transaction'),
    path('api/products/<int:pk>/buyers/', ProductBuyersView.as_view(), name='product_buyers'),
    path('api/products/<int:pk>/sale/', ProductActiveSaleView.as_view(), name='product_active_sale'),

    # Rehearsal room endpoints
    path('api/rooms/', RoomListCreateView.as_view(), name='room_list'),
    path('api/rooms/<int:pk>/', RoomDetailView.as_view(), name='room_detail'),
    path('api/rooms/<int:pk>/mark-rented/', RoomMarkRentedView.as_view(), name='room_mark_rented'),

    # Chat endpoints
    path('api/chats/', ChatListOpenView.as_view(), name='chat_list'),
    path('api/chats/<int:pk>/', ChatDetailView.as_view(), name='chat_detail'),
    path('api/chats/<int:pk>/messages/', ChatMessagesView.as_view(), name='chat_messages'),

    # Favorite endpoints
    path('api/favorites/', FavoriteListView.as_view(), name='favorite_list'),
    path('api/favorites/toggle/', FavoriteToggleView.as_view(), name='favorite_toggle'),
    path('api/favorites/status/', FavoriteStatusView.as_view(), name='favorite_status'),

    # Sale endpoints
    path('api/sales/', SaleCreateView.as_view(), name='sale_create'),
    path('api/sales/mine/', MySalesView.as_view(), name='sale_mine'),
    path('api/sales/<int:pk>/confirm/', SaleConfirmView.as_view(), name='sale_confirm'),
    path('api/sales/<int:pk>/decline/', SaleDeclineView.as_view(), name='sale_decline'),
    path('api/sales/<int:pk>/withdraw/', SaleWithdrawView.as_view(), name='sale_withdraw'),
    path('api/sales/<int:pk>/reviews/', SaleReviewsView.as_view(), name='sale_reviews'),

    # Review endpoints
    path('api/reviews/', ReviewCreateView.as_view(), name='review_create'),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
