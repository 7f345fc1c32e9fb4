"""
API views for the Gear marketplace.

Views validate the request, call the service layer and shape the response.
Rejected operations raise MarketplaceError subclasses, which
MarketplaceAPIView turns into ``{"success": false, "error", "code"}`` with
the matching status code.
"""

import logging
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.exceptions import TokenError, InvalidToken
from rest_framework_simplejwt.serializers import TokenRefreshSerializer as SimpleJWTRefreshSerializer
from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.permissions import AllowAny, IsAuthenticated, IsAuthenticatedOrReadOnly
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from django.contrib.auth import authenticate, get_user_model
from django.db import IntegrityError

from .exceptions import MarketplaceError, NotFoundError
from .models import Product, RehearsalRoom
from .permissions import IsOwnerOrReadOnly
from .serializers import (
    LoginSerializer,
    LogoutSerializer,
    TokenRefreshSerializer,
    UserProfileSerializer,
    UserRegistrationSerializer,
)

User = get_user_model()
logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Get client IP address from request.
    Handles proxy headers for accurate IP detection.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


class MarketplaceErrorMixin:
    """
    Convert MarketplaceError raised anywhere in the view into the explicit
    failure shape.
    """

    def handle_exception(self, exc):
        if isinstance(exc, MarketplaceError):
            user_id = getattr(self.request.user, 'id', None)
            logger.warning(
                f"Request rejected - {self.__class__.__name__}, Code: {exc.code}, "
                f"User: {user_id}, Detail: {exc.message}"
            )
            return Response(exc.as_response_data(), status=exc.status_code)
        return super().handle_exception(exc)


class MarketplaceAPIView(MarketplaceErrorMixin, APIView):
    permission_classes = [IsAuthenticated]


# ============================================================================
# Authentication
# ============================================================================

class UserRegistrationView(generics.CreateAPIView):
    """
    API endpoint for user registration.

    POST /api/auth/register/
    Request body: {"username", "email", "password", "confirm_password"}

    Returns the created user (without password) on success. Concurrent
    duplicate signups are caught at the database level.
    """
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.perform_create(serializer)
        except IntegrityError as e:
            message = str(e).lower()
            field = 'username' if 'username' in message else 'email'
            return Response(
                {field: [f'A user with that {field} already exists.']},
                status=status.HTTP_400_BAD_REQUEST
            )

        logger.info(
            f"User registered. User ID: {serializer.instance.id}, IP: {get_client_ip(request)}"
        )
        headers = self.get_success_headers(serializer.data)
        return Response(serializer.data, status=status.HTTP_201_CREATED, headers=headers)


class LoginView(APIView):
    """
    API endpoint for login with JWT token generation.

    Security features:
    - Rate limiting: 5 attempts per minute per IP
    - Generic error message for every failure to prevent user enumeration
    - Failed login attempt logging

    POST /api/auth/login/
    Request body: {"identifier": "<email or username>", "password": "..."}

    Success response (200):
    {
        "access": "<jwt_access_token>",
        "refresh": "<jwt_refresh_token>",
        "user": {"id": 1, "username": "...", "email": "...", "avatar_url": null, ...}
    }

    Error response (401): {"detail": "Invalid credentials"}
    """
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'login'

    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        identifier = serializer.validated_data['identifier'].strip()
        password = serializer.validated_data['password']
        client_ip = get_client_ip(request)

        user = authenticate(request, username=identifier, password=password)

        if user is None:
            logger.warning(
                f"Failed login attempt. Identifier: {identifier}, IP: {client_ip}"
            )
            return Response(
                {'detail': 'Invalid credentials'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        refresh = RefreshToken.for_user(user)

        logger.info(f"Successful login. User ID: {user.id}, IP: {client_ip}")

        return Response({
            'access': str(refresh.access_token),
            'refresh': str(refresh),
            'user': UserProfileSerializer(user, context={'request': request}).data,
        }, status=status.HTTP_200_OK)


class CustomTokenRefreshView(APIView):
    """
    API endpoint for refreshing JWT access tokens.

    - Rate limiting: 10 requests per minute per IP
    - Rotation: a new refresh token is issued and the old one blacklisted

    POST /api/token/refresh/
    Request body: {"refresh": "<jwt_refresh_token>"}

    Success response (200): {"access": "...", "refresh": "..."}

    Error responses:
    - 400: Missing refresh field
    - 401: Invalid, expired, or blacklisted refresh token
    - 429: Rate limit exceeded
    """
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'refresh'

    def post(self, request, *args, **kwargs):
        serializer = TokenRefreshSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        client_ip = get_client_ip(request)
        refresh_serializer = SimpleJWTRefreshSerializer(data=serializer.validated_data)

        try:
            refresh_serializer.is_valid(raise_exception=True)
        except (TokenError, InvalidToken) as e:
            logger.warning(f"Failed token refresh attempt. Error: {e}, IP: {client_ip}")
            return Response({'detail': str(e)}, status=status.HTTP_401_UNAUTHORIZED)

        logger.info(f"Successful token refresh. IP: {client_ip}")
        return Response(refresh_serializer.validated_data, status=status.HTTP_200_OK)


class LogoutView(APIView):
    """
    Blacklist the given refresh token.

    POST /api/auth/logout/
    Request body: {"refresh": "<jwt_refresh_token>"}
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = LogoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            token = RefreshToken(serializer.validated_data['refresh'])
            if str(token.get('user_id')) != str(request.user.id):
                return Response(
                    {'detail': 'Token does not belong to this user.'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            token.blacklist()
        except TokenError as e:
            return Response({'detail': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"User logged out. User ID: {request.user.id}, IP: {get_client_ip(request)}")
        return Response({'success': True}, status=status.HTTP_200_OK)


class UserProfileView(MarketplaceAPIView):
    """
    The authenticated user's own profile.

    GET /api/auth/profile/
    PATCH /api/auth/profile/  body: any of username, email, avatar (multipart)
    DELETE /api/auth/profile/
        Close the account: listings are removed, the user is deactivated and
        anonymised, sales and reviews stay. Refused (400, code
        "pending_sale") while the user takes part in a pending sale.
    """

    def get(self, request, *args, **kwargs):
        serializer = UserProfileSerializer(request.user, context={'request': request})
        return Response(serializer.data, status=status.HTTP_200_OK)

    def patch(self, request, *args, **kwargs):
        from .serializers import UserProfileUpdateSerializer

        user = request.user
        serializer = UserProfileUpdateSerializer(
            user,
            data=request.data,
            partial=True,
            context={'request': request}
        )

        if not serializer.is_valid():
            logger.warning(
                f"Profile update validation failed. "
                f"User ID: {user.id}, Errors: {serializer.errors}"
            )
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        serializer.save()
        logger.info(f"Profile updated successfully. User ID: {user.id}")

        return Response(
            UserProfileSerializer(user, context={'request': request}).data,
            status=status.HTTP_200_OK
        )

    def delete(self, request, *args, **kwargs):
        from .services.accounts import delete_account

        user_id = request.user.id
        delete_account(caller=request.user)

        logger.info(f"Account closed. User ID: {user_id}, IP: {get_client_ip(request)}")
        return Response({'success': True}, status=status.HTTP_200_OK)


# ============================================================================
# Public user pages
# ============================================================================

class UserUsernameView(MarketplaceAPIView):
    """
    GET /api/users/{id}/username/

    Minimal public lookup used wherever a user id needs a display name.
    """
    permission_classes = [AllowAny]

    def get(self, request, pk, *args, **kwargs):
        from .serializers import PublicUserSerializer

        user = User.objects.filter(pk=pk, is_active=True).first()
        if user is None:
            raise NotFoundError('User not found.')

        return Response(PublicUserSerializer(user, context={'request': request}).data)


class PublicProfileView(MarketplaceAPIView):
    """
    GET /api/users/{id}/

    Username, avatar, review statistics over publicly visible reviews only,
    visible reviews, sold products and active listings.
    """
    permission_classes = [AllowAny]

    def get(self, request, pk, *args, **kwargs):
        from .serializers import PublicProfileSerializer
        from .services.reviews import get_user_public_profile

        profile = get_user_public_profile(user_id=pk)
        return Response(PublicProfileSerializer(profile, context={'request': request}).data)


class UserReviewsView(MarketplaceAPIView):
    """
    GET /api/users/{id}/reviews/

    Response (200):
    {
        "reviews": [...],
        "statistics": {"average_rating": 4.5, "total_reviews": 2, "rating_distribution": {...}}
    }
    """
    permission_classes = [AllowAny]

    def get(self, request, pk, *args, **kwargs):
        from .serializers import ReviewSerializer, ReviewStatisticsSerializer
        from .services.reviews import get_valid_public_reviews

        result = get_valid_public_reviews(user_id=pk)
        return Response({
            'reviews': ReviewSerializer(result['reviews'], many=True, context={'request': request}).data,
            'statistics': ReviewStatisticsSerializer(result['statistics']).data,
        })


class UserSoldProductsView(MarketplaceAPIView):
    """GET /api/users/{id}/sold-products/ (includes soft-deleted products)"""
    permission_classes = [AllowAny]

    def get(self, request, pk, *args, **kwargs):
        from .serializers import ProductSummarySerializer
        from .services.listings import get_user_sold_products

        products = get_user_sold_products(user_id=pk)
        return Response(ProductSummarySerializer(products, many=True).data)


# ============================================================================
# Listings
# ============================================================================

class ProductListCreateView(MarketplaceErrorMixin, generics.ListCreateAPIView):
    """
    GET /api/products/
        Unsold, not deleted products, newest first, paginated.

        Query parameters:
        - q: free-text search over brand, model, type, description, category
        - category, owner, type, brand, location, condition
        - min_price, max_price, min_year, max_year (inclusive)
        - include_sold: also list sold products

        Error response (400): {"success": false, "error": "...", "code": "invalid_filter"}

    POST /api/products/
        Create a listing owned by the caller.
    """
    permission_classes = [IsAuthenticatedOrReadOnly]

    def get_serializer_class(self):
        from .serializers import ProductSerializer
        return ProductSerializer

    def get_queryset(self):
        from .services.listings import filter_products

        queryset = Product.objects.select_related('owner').order_by('-created_at', '-pk')

        include_sold = self.request.query_params.get('include_sold', '').lower() in ('1', 'true', 'yes')
        if not include_sold:
            queryset = queryset.filter(sold=False)

        return filter_products(queryset, self.request.query_params)

    def perform_create(self, serializer):
        product = serializer.save(owner=self.request.user)
        logger.info(f"Product created - Product ID: {product.id}, Owner: {self.request.user.id}")


class ProductDetailView(MarketplaceErrorMixin, generics.RetrieveUpdateDestroyAPIView):
    """
    GET /api/products/{id}/      404 for soft-deleted products
    PATCH /api/products/{id}/    owner only
    DELETE /api/products/{id}/   owner only, soft delete
    """
    permission_classes = [IsAuthenticatedOrReadOnly, IsOwnerOrReadOnly]
    http_method_names = ['get', 'patch', 'delete', 'head', 'options']

    def get_serializer_class(self):
        from .serializers import ProductSerializer
        return ProductSerializer

    def get_queryset(self):
        return Product.objects.select_related('owner')

    def perform_update(self, serializer):
        product = serializer.save()
        logger.info(f"Product updated - Product ID: {product.id}, Owner: {self.request.user.id}")

    def destroy(self, request, *args, **kwargs):
        from .services.listings import soft_delete_product

        product = self.get_object()
        soft_delete_product(product_id=product.id, caller=request.user)
        return Response({'success': True}, status=status.HTTP_200_OK)


class ProductTransactionView(MarketplaceAPIView):
    """
    GET /api/products/{id}/transaction/

    Product for sale and review pages, including soft-deleted products.
    Only the owner and buyers of the product may read it.
    """

    def get(self, request, pk, *args, **kwargs):
        from .serializers import TransactionProductSerializer
        from .services.listings import get_product_for_transaction

        product = get_product_for_transaction(product_id=pk, caller=request.user)
        return Response(TransactionProductSerializer(product, context={'request': request}).data)


class ProductBuyersView(MarketplaceAPIView):
    """
    GET /api/products/{id}/buyers/

    Users with an active chat about the product (owner only). These are the
    users the owner can mark the product as sold to.
    """

    def get(self, request, pk, *args, **kwargs):
        from .serializers import ProductBuyerSerializer
        from .services.sales import get_product_buyers

        buyers = get_product_buyers(product_id=pk, caller=request.user)
        return Response(ProductBuyerSerializer(buyers, many=True).data)


class ProductActiveSaleView(MarketplaceAPIView):
    """
    GET /api/products/{id}/sale/

    The pending or completed sale of a product, for its buyer and seller.
    Response (200): {"sale": {...}} or {"sale": null}
    """

    def get(self, request, pk, *args, **kwargs):
        from .serializers import SaleSerializer
        from .services.sales import get_active_sale

        sale = get_active_sale(product_id=pk, caller=request.user)
        data = SaleSerializer(sale, context={'request': request}).data if sale else None
        return Response({'sale': data})


class RoomListCreateView(generics.ListCreateAPIView):
    """
    GET /api/rooms/      Rooms not yet rented, newest first, paginated.
    POST /api/rooms/     Create a room owned by the caller.
    """
    permission_classes = [IsAuthenticatedOrReadOnly]

    def get_serializer_class(self):
        from .serializers import RehearsalRoomSerializer
        return RehearsalRoomSerializer

    def get_queryset(self):
        queryset = RehearsalRoom.objects.select_related('owner').order_by('-created_at', '-pk')
        if self.request.query_params.get('include_rented', '').lower() not in ('1', 'true', 'yes'):
            queryset = queryset.filter(rented=False)
        return queryset

    def perform_create(self, serializer):
        room = serializer.save(owner=self.request.user)
        logger.info(f"Room created - Room ID: {room.id}, Owner: {self.request.user.id}")


class RoomDetailView(generics.RetrieveAPIView):
    """GET /api/rooms/{id}/"""
    permission_classes = [AllowAny]
    queryset = RehearsalRoom.objects.select_related('owner')

    def get_serializer_class(self):
        from .serializers import RehearsalRoomSerializer
        return RehearsalRoomSerializer


class RoomMarkRentedView(MarketplaceAPIView):
    """POST /api/rooms/{id}/mark-rented/ (owner only)"""

    def post(self, request, pk, *args, **kwargs):
        from .serializers import RehearsalRoomSerializer
        from .services.listings import mark_room_rented

        room = mark_room_rented(room_id=pk, caller=request.user)
        return Response({
            'success': True,
            'room': RehearsalRoomSerializer(room, context={'request': request}).data,
        })


# ============================================================================
# Chats
# ============================================================================

class ChatListOpenView(MarketplaceAPIView):
    """
    GET /api/chats/
        The caller's chats that the caller has not deleted, most recent first.

    POST /api/chats/
        Request body: {"item_type": "product" | "room", "item_id": 12}
        Opens (or restores) the caller's chat with the listing owner.
        201 when a chat was created, 200 when an existing one is returned.
    """

    def get(self, request, *args, **kwargs):
        from .serializers import ChatSerializer
        from .services.chats import list_chats

        chats = list_chats(caller=request.user)
        return Response(ChatSerializer(chats, many=True, context={'request': request}).data)

    def post(self, request, *args, **kwargs):
        from .serializers import ChatOpenSerializer, ChatSerializer
        from .services.chats import open_chat

        serializer = ChatOpenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        chat, created = open_chat(
            item_type=serializer.validated_data['item_type'],
            item_id=serializer.validated_data['item_id'],
            caller=request.user,
        )

        return Response(
            {'success': True, 'chat': ChatSerializer(chat, context={'request': request}).data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


class ChatDetailView(MarketplaceAPIView):
    """DELETE /api/chats/{id}/ hides the chat for the caller only."""

    def delete(self, request, pk, *args, **kwargs):
        from .services.chats import delete_chat

        delete_chat(chat_id=pk, caller=request.user)
        return Response({'success': True}, status=status.HTTP_200_OK)


class ChatMessagesView(MarketplaceAPIView):
    """
    GET /api/chats/{id}/messages/
        Messages oldest first; marks the counterpart's messages as read.

    POST /api/chats/{id}/messages/
        Request body: {"content": "..."} (1 to 1000 characters)
        Rate limited to 10 messages per minute per user.
    """
    throttle_scope = 'chat_message'

    def get_throttles(self):
        if self.request.method == 'POST':
            return [ScopedRateThrottle()]
        return super().get_throttles()

    def get(self, request, pk, *args, **kwargs):
        from .serializers import MessageSerializer
        from .services.chats import list_messages

        messages = list_messages(chat_id=pk, caller=request.user)
        return Response(MessageSerializer(messages, many=True).data)

    def post(self, request, pk, *args, **kwargs):
        from .serializers import MessageCreateSerializer, MessageSerializer
        from .services.chats import send_message

        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = send_message(
            chat_id=pk,
            caller=request.user,
            content=serializer.validated_data['content'],
        )
        return Response(
            {'success': True, 'message': MessageSerializer(message).data},
            status=status.HTTP_201_CREATED
        )


# ============================================================================
# Favorites
# ============================================================================

class FavoriteListView(MarketplaceAPIView):
    """GET /api/favorites/ lists the caller's saved listings, newest first."""

    def get(self, request, *args, **kwargs):
        from .serializers import FavoriteSerializer
        from .services.favorites import list_favorites

        favorites = list_favorites(caller=request.user)
        return Response(FavoriteSerializer(favorites, many=True).data)


class FavoriteToggleView(MarketplaceAPIView):
    """
    POST /api/favorites/toggle/
    Request body: {"item_type": "product" | "room", "item_id": 12}

    Saves the listing, or removes it when already saved. Owners cannot save
    their own listings.

    Response (200): {"success": true, "favorited": true, "favorites_count": 3}
    """

    def post(self, request, *args, **kwargs):
        from .serializers import FavoriteToggleSerializer
        from .services.favorites import toggle_favorite

        serializer = FavoriteToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        favorited, count = toggle_favorite(
            item_type=serializer.validated_data['item_type'],
            item_id=serializer.validated_data['item_id'],
            caller=request.user,
        )
        return Response({'success': True, 'favorited': favorited, 'favorites_count': count})


class FavoriteStatusView(MarketplaceAPIView):
    """
    GET /api/favorites/status/?item_type=product&item_id=12

    Response (200): {"favorited": false, "favorites_count": 3}
    Anonymous callers always get "favorited": false.
    """
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        from .serializers import FavoriteToggleSerializer
        from .services.favorites import favorite_status

        serializer = FavoriteToggleSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        return Response(favorite_status(
            item_type=serializer.validated_data['item_type'],
            item_id=serializer.validated_data['item_id'],
            caller=request.user,
        ))


# ============================================================================
# Sales
# ============================================================================

class SaleCreateView(MarketplaceAPIView):
    """
    API endpoint for the seller to mark a product as sold to a buyer.

    POST /api/sales/
    Request body: {"product_id": 12, "buyer_id": 34}

    Success response (201): {"success": true, "sale": {...}}

    Error responses:
    - 400: Buyer is the seller, or has no chat about the product
    - 403: Caller does not own the product
    - 404: Product or buyer not found
    - 409: Product is already sold
    """

    def post(self, request, *args, **kwargs):
        from .serializers import SaleCreateSerializer, SaleSerializer
        from .services.sales import create_sale_request

        serializer = SaleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        sale = create_sale_request(
            product_id=serializer.validated_data['product_id'],
            buyer_id=serializer.validated_data['buyer_id'],
            caller=request.user,
        )

        return Response(
            {'success': True, 'sale': SaleSerializer(sale, context={'request': request}).data},
            status=status.HTTP_201_CREATED
        )


class MySalesView(MarketplaceAPIView):
    """
    GET /api/sales/mine/?role=seller|buyer

    seller: every sale of the caller including cancelled ones.
    buyer: the caller's purchases, cancelled proposals excluded.
    Each row carries has_reviewed and can_review for the caller.
    """

    def get(self, request, *args, **kwargs):
        from .serializers import UserSaleSerializer
        from .services.sales import list_user_sales

        role = request.query_params.get('role', 'seller')
        rows = list_user_sales(caller=request.user, role=role)
        return Response(UserSaleSerializer(rows, many=True, context={'request': request}).data)


class SaleTransitionView(MarketplaceAPIView):
    """
    Base for the buyer/seller actions on a pending sale.

    POST /api/sales/{id}/<action>/
    Success response (200): {"success": true, "sale": {...}}
    """
    transition = None

    def post(self, request, pk, *args, **kwargs):
        from .serializers import SaleSerializer

        sale = type(self).transition(sale_id=pk, caller=request.user)
        return Response(
            {'success': True, 'sale': SaleSerializer(sale, context={'request': request}).data},
            status=status.HTTP_200_OK
        )


class SaleConfirmView(SaleTransitionView):
    """Buyer confirms; the sale completes and the review window opens."""

    @staticmethod
    def transition(**kwargs):
        from .services.sales import confirm_sale
        return confirm_sale(**kwargs)


class SaleDeclineView(SaleTransitionView):
    """Buyer declines; the product is listed again."""

    @staticmethod
    def transition(**kwargs):
        from .services.sales import decline_sale
        return decline_sale(**kwargs)


class SaleWithdrawView(SaleTransitionView):
    """Seller withdraws an unanswered proposal; the product is listed again."""

    @staticmethod
    def transition(**kwargs):
        from .services.sales import withdraw_sale
        return withdraw_sale(**kwargs)


class SaleReviewsView(MarketplaceAPIView):
    """
    GET /api/sales/{id}/reviews/

    Response (200):
    {"visible": false, "reviews": [], "message": "Reviews become visible once ..."}
    """

    def get(self, request, pk, *args, **kwargs):
        from .serializers import ReviewSerializer
        from .services.reviews import get_sale_reviews

        result = get_sale_reviews(sale_id=pk, caller=request.user)
        return Response({
            'visible': result['visible'],
            'reviews': ReviewSerializer(result['reviews'], many=True, context={'request': request}).data,
            'message': result['message'],
        })


# ============================================================================
# Reviews
# ============================================================================

class ReviewCreateView(MarketplaceAPIView):
    """
    API endpoint for creating reviews.

    POST /api/reviews/
    Request body: {"sale_id": 123, "rating": 5, "content": "Smooth handover!"}

    Success response (201): {"success": true, "review": {...}}

    Error responses:
    - 400: Invalid rating/content, sale not completed, or review period expired
    - 403: Caller was not part of the sale
    - 404: Sale not found
    - 409: Caller already reviewed this sale
    """

    def post(self, request, *args, **kwargs):
        from .serializers import ReviewCreateSerializer, ReviewSerializer
        from .services.reviews import create_review

        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review = create_review(
            sale_id=serializer.validated_data['sale_id'],
            rating=serializer.validated_data['rating'],
            content=serializer.validated_data.get('content', ''),
            caller=request.user,
        )

        return Response(
            {'success': True, 'review': ReviewSerializer(review, context={'request': request}).data},
            status=status.HTTP_201_CREATED
        )
