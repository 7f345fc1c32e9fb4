"""
Serializers for authentication, listings, chats, sales and reviews.
"""

from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.contrib.auth.hashers import make_password

from . import lifecycle
from .models import Chat, Favorite, Message, Product, RehearsalRoom, Review, Sale

User = get_user_model()


def absolute_avatar_url(user, request=None):
    """
    Full URL for a user's avatar, or None if no avatar is uploaded.

    Falls back to the relative media URL when no request is available.
    """
    if not user.avatar:
        return None
    if request is not None:
        return request.build_absolute_uri(user.avatar.url)
    return user.avatar.url


# ============================================================================
# Accounts
# ============================================================================

class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for user registration.

    Fields:
    - username: Required, unique public handle
    - email: Required, unique (case-insensitive)
    - password: Required, must pass Django's password validators
    - confirm_password: Required, must match password
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    confirm_password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'password', 'confirm_password', 'created_at']
        read_only_fields = ['id', 'created_at']
        extra_kwargs = {
            'email': {'required': True},
        }

    def validate_email(self, value):
        value = value.strip().lower()

        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that email already exists."
            )

        return value

    def validate_username(self, value):
        value = value.strip()

        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that username already exists."
            )

        return value

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))

        return value

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('confirm_password'):
            raise serializers.ValidationError({
                'confirm_password': 'Password confirmation does not match.'
            })

        return attrs

    def create(self, validated_data):
        """
        Create the user with a hashed password.

        Privilege fields are dropped so they can never be set at signup.
        """
        from django.db import transaction

        validated_data.pop('confirm_password', None)
        validated_data['password'] = make_password(validated_data.pop('password'))

        for field in ('is_superuser', 'is_staff', 'is_active', 'groups', 'user_permissions'):
            validated_data.pop(field, None)

        with transaction.atomic():
            user = User.objects.create(**validated_data)

        return user


class LoginSerializer(serializers.Serializer):
    """
    Login with an email address or a username.

    Minimal validation to prevent user enumeration; authentication happens
    in the view.
    """
    identifier = serializers.CharField(
        required=True,
        max_length=254,
        help_text='Email address or username'
    )
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )


class TokenRefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField(
        required=True,
        help_text='Valid refresh token to exchange for new access token'
    )


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(
        required=True,
        help_text='Refresh token to blacklist'
    )


class UserProfileSerializer(serializers.ModelSerializer):
    """
    The authenticated user's own profile. Excludes password and permission
    fields.
    """

    avatar_url = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'avatar_url', 'created_at']
        read_only_fields = fields

    def get_avatar_url(self, obj):
        return absolute_avatar_url(obj, self.context.get('request'))


class UserProfileUpdateSerializer(serializers.ModelSerializer):
    """
    Serializer for profile updates (PATCH).

    Only username, email and avatar can change. Email keeps its
    case-insensitive uniqueness.
    """

    class Meta:
        model = User
        fields = ['username', 'email', 'avatar']
        extra_kwargs = {
            'username': {'required': False},
            'email': {'required': False},
            'avatar': {'required': False},
        }

    def validate_email(self, value):
        value = value.strip().lower()

        duplicate = User.objects.filter(email__iexact=value).exclude(pk=self.instance.pk)
        if duplicate.exists():
            raise serializers.ValidationError("A user with that email already exists.")

        return value

    def validate_username(self, value):
        value = value.strip()

        duplicate = User.objects.filter(username__iexact=value).exclude(pk=self.instance.pk)
        if duplicate.exists():
            raise serializers.ValidationError("A user with that username already exists.")

        return value


class PublicUserSerializer(serializers.ModelSerializer):
    """What other users may see: id, username and avatar."""

    avatar_url = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'avatar_url']
        read_only_fields = fields

    def get_avatar_url(self, obj):
        return absolute_avatar_url(obj, self.context.get('request'))


# ============================================================================
# Listings
# ============================================================================

class ProductSerializer(serializers.ModelSerializer):
    """
    Product listing for create, update and display.

    sold, sold_at and the soft-delete fields are managed by the sale
    workflow and can never be written through this serializer.
    """

    owner = PublicUserSerializer(read_only=True)
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'owner', 'category', 'type', 'brand', 'model', 'display_name',
            'description', 'price', 'location', 'condition', 'year', 'image_urls',
            'sold', 'sold_at', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'owner', 'display_name', 'sold', 'sold_at', 'created_at', 'updated_at']
        extra_kwargs = {
            'image_urls': {'required': True},
        }

    def validate_type(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Type is required.")
        return value


class TransactionProductSerializer(ProductSerializer):
    """Product as shown on sale and review pages, soft-deleted or not."""

    class Meta(ProductSerializer.Meta):
        fields = ProductSerializer.Meta.fields + ['is_soft_deleted', 'deleted_at']
        read_only_fields = fields


class ProductSummarySerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'display_name', 'category', 'price', 'image_urls', 'sold', 'sold_at', 'is_soft_deleted']
        read_only_fields = fields


class RehearsalRoomSerializer(serializers.ModelSerializer):
    owner = PublicUserSerializer(read_only=True)

    class Meta:
        model = RehearsalRoom
        fields = [
            'id', 'owner', 'name', 'type', 'description', 'address', 'location',
            'room_size', 'price', 'payment_type', 'image_urls', 'rented', 'rented_at',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'owner', 'rented', 'rented_at', 'created_at', 'updated_at']
        extra_kwargs = {
            'image_urls': {'required': True},
        }


class RoomSummarySerializer(serializers.ModelSerializer):

    class Meta:
        model = RehearsalRoom
        fields = ['id', 'name', 'type', 'image_urls', 'rented']
        read_only_fields = fields


# ============================================================================
# Chats
# ============================================================================

class ChatOpenSerializer(serializers.Serializer):
    item_type = serializers.ChoiceField(choices=['product', 'room'])
    item_id = serializers.IntegerField(min_value=1)


class ChatSerializer(serializers.ModelSerializer):
    """
    A chat from the point of view of the requesting user.
    """

    item_type = serializers.SerializerMethodField()
    product = ProductSummarySerializer(read_only=True)
    room = RoomSummarySerializer(read_only=True)
    buyer = PublicUserSerializer(read_only=True)
    seller = PublicUserSerializer(read_only=True)
    last_message = serializers.SerializerMethodField()
    unread_count = serializers.SerializerMethodField()

    class Meta:
        model = Chat
        fields = [
            'id', 'item_type', 'product', 'room', 'buyer', 'seller',
            'last_message', 'unread_count', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_item_type(self, obj):
        return 'product' if obj.product_id else 'room'

    def get_last_message(self, obj):
        message = obj.messages.order_by('-created_at').first()
        if message is None:
            return None
        return {
            'content': message.content,
            'sender_id': message.sender_id,
            'created_at': message.created_at,
        }

    def get_unread_count(self, obj):
        request = self.context.get('request')
        if request is None:
            return 0
        return obj.messages.filter(is_read=False).exclude(sender_id=request.user.id).count()


class MessageSerializer(serializers.ModelSerializer):
    sender_username = serializers.CharField(source='sender.username', read_only=True)

    class Meta:
        model = Message
        fields = ['id', 'chat', 'sender', 'sender_username', 'content', 'is_read', 'created_at']
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(
        max_length=1000,
        trim_whitespace=True,
        help_text='Message text, 1 to 1000 characters'
    )


# ============================================================================
# Favorites
# ============================================================================

class FavoriteToggleSerializer(serializers.Serializer):
    item_type = serializers.ChoiceField(choices=['product', 'room'])
    item_id = serializers.IntegerField(min_value=1)


class FavoriteSerializer(serializers.ModelSerializer):
    item_type = serializers.CharField(read_only=True)
    product = ProductSummarySerializer(read_only=True)
    room = RoomSummarySerializer(read_only=True)

    class Meta:
        model = Favorite
        fields = ['id', 'item_type', 'product', 'room', 'created_at']
        read_only_fields = fields


# ============================================================================
# Sales and reviews
# ============================================================================

class SaleCreateSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    buyer_id = serializers.IntegerField(min_value=1)


class SaleSerializer(serializers.ModelSerializer):
    product = ProductSummarySerializer(read_only=True)
    buyer = PublicUserSerializer(read_only=True)
    seller = PublicUserSerializer(read_only=True)
    review_window_closes_at = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            'id', 'product', 'buyer', 'seller', 'status', 'cancel_reason',
            'created_at', 'completed_at', 'cancelled_at', 'review_window_closes_at',
        ]
        read_only_fields = fields

    def get_review_window_closes_at(self, obj):
        return lifecycle.review_window_closes_at(obj.completed_at)


class UserSaleSerializer(serializers.Serializer):
    """One row of "my sales" / "my purchases"."""

    sale = SaleSerializer(read_only=True)
    counterpart = PublicUserSerializer(read_only=True)
    has_reviewed = serializers.BooleanField(read_only=True)
    can_review = serializers.BooleanField(read_only=True)


class ProductBuyerSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(read_only=True)
    username = serializers.CharField(read_only=True)
    avatar_url = serializers.CharField(read_only=True, allow_null=True)


class ReviewCreateSerializer(serializers.Serializer):
    """
    Request body of POST /api/reviews/.

    Participation, sale status, the review window and duplicates are
    checked by the review service, not here.
    """

    sale_id = serializers.IntegerField(min_value=1)
    rating = serializers.IntegerField(
        min_value=1,
        max_value=5,
        error_messages={
            'min_value': 'Rating must be between 1 and 5.',
            'max_value': 'Rating must be between 1 and 5.',
        }
    )
    content = serializers.CharField(
        max_length=1000,
        required=False,
        allow_blank=True,
        default=''
    )


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = PublicUserSerializer(read_only=True)
    reviewee_id = serializers.IntegerField(read_only=True)
    sale_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Review
        fields = ['id', 'sale_id', 'reviewer', 'reviewee_id', 'rating', 'content', 'created_at']
        read_only_fields = fields


class ReviewStatisticsSerializer(serializers.Serializer):
    average_rating = serializers.FloatField(read_only=True, allow_null=True)
    total_reviews = serializers.IntegerField(read_only=True)
    rating_distribution = serializers.DictField(child=serializers.IntegerField(), read_only=True)


class PublicProfileSerializer(serializers.Serializer):
    user = PublicUserSerializer(read_only=True)
    statistics = ReviewStatisticsSerializer(read_only=True)
    reviews = ReviewSerializer(many=True, read_only=True)
    sold_products = ProductSummarySerializer(many=True, read_only=True)
    active_products = ProductSerializer(many=True, read_only=True)
