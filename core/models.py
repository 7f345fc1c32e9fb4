"""
Data model for the Gear marketplace: users, listings, chats, sales,
reviews and the notification outbox.
"""

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MaxLengthValidator, MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from . import lifecycle
from .validators import (
    validate_avatar_image,
    validate_image_urls,
    validate_listing_price,
    validate_listing_year,
)


def user_avatar_upload_path(instance, filename):
    """
    Generate upload path for user avatars.

    Path format: avatars/{user_id}/{filename}
    If the user is not saved yet, 'temp' is used as placeholder.
    """
    user_id = instance.id if instance.id else 'temp'
    return f'avatars/{user_id}/{filename}'


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique, stored lowercase
    - avatar: Optional profile picture
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp

    The username is the public handle shown next to listings, chats and
    reviews.
    """

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    avatar = models.ImageField(
        _('avatar'),
        upload_to=user_avatar_upload_path,
        blank=True,
        null=True,
        validators=[validate_avatar_image],
        help_text=_('Optional. Upload a profile picture (max 5MB, formats: jpg, png, webp).')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='core_user_email_idx'),
        ]

    def __str__(self):
        return self.username or self.email

    @property
    def avatar_url(self):
        if self.avatar:
            return self.avatar.url
        return None

    def clean(self):
        """
        Normalize the email to lowercase and require it.

        Raises:
            ValidationError: If the email is missing
        """
        super().clean()

        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

    def save(self, *args, **kwargs):
        """
        Normalize email and validate on update.

        Creation skips full_clean so duplicate emails surface as the
        database IntegrityError. A new user with an avatar is saved first to
        obtain an id for the upload path.
        """
        if self.email:
            self.email = self.email.lower()

        if self.pk is not None:
            self.full_clean()

        if self.avatar and not self.pk:
            avatar_temp = self.avatar
            self.avatar = None
            super().save(*args, **kwargs)
            self.avatar = avatar_temp
            super().save(update_fields=['avatar'])
        else:
            super().save(*args, **kwargs)


# ============================================================================
# Listings
# ============================================================================

class ProductQuerySet(models.QuerySet):

    def visible(self):
        return self.filter(is_soft_deleted=False)

    def available(self):
        return self.filter(is_soft_deleted=False, sold=False)


class VisibleProductManager(models.Manager.from_queryset(ProductQuerySet)):
    """Default manager: soft-deleted products do not exist for ordinary reads."""

    def get_queryset(self):
        return super().get_queryset().visible()


class Product(models.Model):
    """
    An instrument or piece of gear listed for sale.

    Fields:
    - owner: The seller
    - category: One of the fixed marketplace categories
    - type, brand, model: Free-text description of the item
    - price: Optional asking price (null means price on request)
    - image_urls: 1 to 10 image URLs
    - sold / sold_at: Set while a sale is pending or completed
    - is_soft_deleted / deleted_at: Hidden from listings but kept for history

    ``objects`` hides soft-deleted rows. ``all_objects`` includes them and is
    only used for historical sale and review display.
    """

    CATEGORY_CHOICES = [
        ('drums', 'Drums'),
        ('guitar', 'Guitar'),
        ('bass', 'Bass'),
        ('keyboards', 'Keyboards'),
        ('wind', 'Wind instruments'),
        ('studio', 'Studio equipment'),
        ('strings', 'Strings'),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='products',
        help_text=_('User selling the item')
    )

    category = models.CharField(
        _('category'),
        max_length=20,
        choices=CATEGORY_CHOICES,
        help_text=_('Marketplace category')
    )

    type = models.CharField(
        _('type'),
        max_length=100,
        help_text=_('What kind of item this is, e.g. "Electric guitar"')
    )

    brand = models.CharField(_('brand'), max_length=100, blank=True, default='')

    model = models.CharField(_('model'), max_length=100, blank=True, default='')

    description = models.TextField(
        _('description'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(5000)],
        help_text=_('Free-text description, at most 5000 characters')
    )

    price = models.DecimalField(
        _('price'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[validate_listing_price],
        help_text=_('Asking price in DKK; empty means price on request')
    )

    location = models.CharField(_('location'), max_length=200, blank=True, default='')

    condition = models.CharField(_('condition'), max_length=50, blank=True, default='')

    year = models.PositiveSmallIntegerField(
        _('year'),
        null=True,
        blank=True,
        validators=[validate_listing_year],
        help_text=_('Production year')
    )

    image_urls = models.JSONField(
        _('image URLs'),
        default=list,
        validators=[validate_image_urls],
        help_text=_('Between 1 and 10 image URLs')
    )

    sold = models.BooleanField(
        _('sold'),
        default=False,
        help_text=_('True while a sale for this product is pending or completed')
    )

    sold_at = models.DateTimeField(
        _('sold at'),
        null=True,
        blank=True,
        help_text=_('When the item was marked sold; reset on sale completion')
    )

    is_soft_deleted = models.BooleanField(
        _('soft deleted'),
        default=False,
        help_text=_('Hidden from listings but kept for sale history')
    )

    deleted_at = models.DateTimeField(_('deleted at'), null=True, blank=True)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = VisibleProductManager()
    all_objects = ProductQuerySet.as_manager()

    class Meta:
        verbose_name = _('product')
        verbose_name_plural = _('products')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner'], name='core_produc_owner_idx'),
            models.Index(fields=['category'], name='core_produc_categor_idx'),
            models.Index(fields=['sold', 'is_soft_deleted'], name='core_produc_sold_idx'),
            models.Index(fields=['created_at'], name='core_produc_created_idx'),
        ]

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        if self.brand and self.model:
            return f'{self.brand} {self.model}'
        return self.type

    def clean(self):
        super().clean()

        if self.type is not None and not self.type.strip():
            raise ValidationError({
                'type': _('Type cannot be empty.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def mark_as_sold(self, now=None):
        self.sold = True
        self.sold_at = now or timezone.now()
        self.save(update_fields=['sold', 'sold_at', 'updated_at'])

    def relist(self):
        self.sold = False
        self.sold_at = None
        self.save(update_fields=['sold', 'sold_at', 'updated_at'])

    def soft_delete(self, now=None):
        self.is_soft_deleted = True
        self.deleted_at = now or timezone.now()
        self.save(update_fields=['is_soft_deleted', 'deleted_at', 'updated_at'])


class RehearsalRoom(models.Model):
    """
    A rehearsal room or studio offered for rent.
    """

    TYPE_CHOICES = [
        ('studio', 'Music studio'),
        ('rehearsal', 'Rehearsal room'),
        ('other', 'Other'),
    ]

    PAYMENT_TYPE_CHOICES = [
        ('per_hour', 'Per hour'),
        ('per_month', 'Per month'),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='rehearsal_rooms',
        help_text=_('User renting out the room')
    )

    name = models.CharField(_('name'), max_length=200, blank=True, default='')

    type = models.CharField(_('type'), max_length=50, choices=TYPE_CHOICES)

    description = models.TextField(
        _('description'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(5000)]
    )

    address = models.CharField(_('address'), max_length=500, blank=True, default='')

    location = models.CharField(_('location'), max_length=200, blank=True, default='')

    room_size = models.DecimalField(
        _('room size'),
        max_digits=7,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(10000)],
        help_text=_('Size in square metres')
    )

    price = models.DecimalField(
        _('price'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[validate_listing_price]
    )

    payment_type = models.CharField(
        _('payment type'),
        max_length=50,
        choices=PAYMENT_TYPE_CHOICES,
        blank=True,
        default=''
    )

    image_urls = models.JSONField(
        _('image URLs'),
        default=list,
        validators=[validate_image_urls]
    )

    rented = models.BooleanField(_('rented'), default=False)

    rented_at = models.DateTimeField(_('rented at'), null=True, blank=True)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('rehearsal room')
        verbose_name_plural = _('rehearsal rooms')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner'], name='core_rehear_owner_idx'),
            models.Index(fields=['rented'], name='core_rehear_rented_idx'),
        ]

    def __str__(self):
        return self.name or self.get_type_display()

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def mark_as_rented(self, now=None):
        self.rented = True
        self.rented_at = now or timezone.now()
        self.save(update_fields=['rented', 'rented_at', 'updated_at'])


# ============================================================================
# Chats
# ============================================================================

class Chat(models.Model):
    """
    Conversation between a prospective buyer and the owner of a listing.

    Exactly one of ``product`` / ``room`` is set. Each side can hide the chat
    independently; the row itself is never removed because a product's
    eligible buyers are derived from it.
    """

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='buyer_chats',
        help_text=_('User who started the conversation')
    )

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='seller_chats',
        help_text=_('Owner of the listing')
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='chats'
    )

    room = models.ForeignKey(
        RehearsalRoom,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='chats'
    )

    deleted_by_buyer = models.BooleanField(_('deleted by buyer'), default=False)

    deleted_by_seller = models.BooleanField(_('deleted by seller'), default=False)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Bumped on every new message')
    )

    class Meta:
        verbose_name = _('chat')
        verbose_name_plural = _('chats')
        ordering = ['-updated_at']
        indexes = [
            models.Index(fields=['buyer'], name='core_chat_buyer_idx'),
            models.Index(fields=['seller'], name='core_chat_seller_idx'),
            models.Index(fields=['product'], name='core_chat_product_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(product__isnull=False, room__isnull=True)
                    | Q(product__isnull=True, room__isnull=False)
                ),
                name='chat_exactly_one_item',
            ),
            models.CheckConstraint(
                condition=~Q(buyer=models.F('seller')),
                name='chat_buyer_not_seller',
            ),
            models.UniqueConstraint(
                fields=['buyer', 'product'],
                condition=Q(product__isnull=False),
                name='unique_chat_per_buyer_product',
            ),
            models.UniqueConstraint(
                fields=['buyer', 'room'],
                condition=Q(room__isnull=False),
                name='unique_chat_per_buyer_room',
            ),
        ]

    def __str__(self):
        return f'Chat {self.pk}: {self.buyer} -> {self.seller}'

    def is_participant(self, user):
        return user.pk in (self.buyer_id, self.seller_id)

    def other_participant_id(self, user_id):
        return self.seller_id if user_id == self.buyer_id else self.buyer_id

    def is_hidden_for(self, user_id):
        if user_id == self.buyer_id:
            return self.deleted_by_buyer
        return self.deleted_by_seller

    @property
    def item_name(self):
        """Name of the listing the chat is about, as used in emails."""
        if self.product_id:
            return self.product.display_name
        return str(self.room)

    def set_deleted_for(self, user, deleted):
        """Hide or restore the chat for one side. Returns the field changed."""
        field = 'deleted_by_buyer' if user.pk == self.buyer_id else 'deleted_by_seller'
        setattr(self, field, deleted)
        return field


class Message(models.Model):
    """A single chat message."""

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name='messages'
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='sent_messages'
    )

    content = models.TextField(
        _('content'),
        validators=[MaxLengthValidator(1000)],
        help_text=_('Message text, 1 to 1000 characters')
    )

    is_read = models.BooleanField(_('read'), default=False)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('message')
        verbose_name_plural = _('messages')
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['chat', 'created_at'], name='core_messag_chat_created_idx'),
        ]

    def __str__(self):
        return f'Message {self.pk} in chat {self.chat_id}'

    def clean(self):
        super().clean()

        if not self.content or not self.content.strip():
            raise ValidationError({
                'content': _('Message cannot be empty.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


# ============================================================================
# Favorites
# ============================================================================

class Favorite(models.Model):
    """
    A listing a user has saved. Exactly one of ``product`` / ``room`` is set,
    and a user can save each listing once.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='favorites'
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='favorites'
    )

    room = models.ForeignKey(
        RehearsalRoom,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='favorites'
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('favorite')
        verbose_name_plural = _('favorites')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='core_favori_user_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(product__isnull=False, room__isnull=True)
                    | Q(product__isnull=True, room__isnull=False)
                ),
                name='favorite_exactly_one_item',
            ),
            models.UniqueConstraint(
                fields=['user', 'product'],
                condition=Q(product__isnull=False),
                name='unique_favorite_per_user_product',
            ),
            models.UniqueConstraint(
                fields=['user', 'room'],
                condition=Q(room__isnull=False),
                name='unique_favorite_per_user_room',
            ),
        ]

    def __str__(self):
        return f'Favorite {self.pk}: {self.user_id}'

    @property
    def item_type(self):
        return 'product' if self.product_id else 'room'


# ============================================================================
# Sales
# ============================================================================

class Sale(models.Model):
    """
    A proposed or completed transfer of a product from seller to buyer.

    Status lifecycle (see core.lifecycle):
    - pending -> completed (buyer confirms)
    - pending -> cancelled (buyer declines or seller withdraws)

    Sales are never deleted; they are the history reviews hang off. At most
    one pending or completed sale exists per product, enforced by a partial
    unique constraint.
    """

    STATUS_CHOICES = [
        (lifecycle.STATUS_PENDING, 'Pending'),
        (lifecycle.STATUS_COMPLETED, 'Completed'),
        (lifecycle.STATUS_CANCELLED, 'Cancelled'),
    ]

    CANCEL_REASON_CHOICES = [
        ('', 'None'),
        ('declined', 'Declined by buyer'),
        ('withdrawn', 'Withdrawn by seller'),
    ]

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name='sales',
        help_text=_('Product being sold')
    )

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='purchases',
        help_text=_('User buying the product')
    )

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='sales',
        help_text=_('User selling the product')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=lifecycle.STATUS_PENDING
    )

    completed_at = models.DateTimeField(
        _('completed at'),
        null=True,
        blank=True,
        help_text=_('When the buyer confirmed; starts the review window')
    )

    cancelled_at = models.DateTimeField(_('cancelled at'), null=True, blank=True)

    cancel_reason = models.CharField(
        _('cancel reason'),
        max_length=20,
        choices=CANCEL_REASON_CHOICES,
        blank=True,
        default=''
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('sale')
        verbose_name_plural = _('sales')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['buyer', 'status'], name='core_sale_buyer_status_idx'),
            models.Index(fields=['seller', 'status'], name='core_sale_seller_status_idx'),
            models.Index(fields=['completed_at'], name='core_sale_completed_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['product'],
                condition=Q(status__in=lifecycle.ACTIVE_STATUSES),
                name='unique_active_sale_per_product',
            ),
            models.CheckConstraint(
                condition=~Q(buyer=models.F('seller')),
                name='sale_buyer_not_seller',
            ),
        ]

    def __str__(self):
        return f'Sale {self.pk}: {self.product_id} ({self.status})'

    def is_participant(self, user):
        return user.pk in (self.buyer_id, self.seller_id)

    def counterpart_id(self, user):
        return self.seller_id if user.pk == self.buyer_id else self.buyer_id

    def clean(self):
        super().clean()

        if self.buyer_id and self.seller_id and self.buyer_id == self.seller_id:
            raise ValidationError({
                'buyer': _('Buyer and seller cannot be the same user.')
            })

    def save(self, *args, **kwargs):
        """
        Note: full_clean() is not called here so that the partial unique
        constraint raises IntegrityError under concurrent proposals; the
        services translate that into a conflict.
        """
        if not self.pk:
            self.clean()
        super().save(*args, **kwargs)


class Review(models.Model):
    """
    Review one participant of a completed sale leaves about the other.

    Fields:
    - sale: The completed sale
    - reviewer: Buyer or seller of the sale
    - reviewee: The other participant
    - rating: Integer rating from 1 to 5
    - content: Optional text, at most 1000 characters
    - created_at: Timestamp when the review was created
    """

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name='reviews',
        help_text=_('Sale being reviewed')
    )

    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='reviews_given',
        help_text=_('User writing the review')
    )

    reviewee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='reviews_received',
        help_text=_('User receiving the review')
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ],
        help_text=_('Rating from 1 to 5 stars')
    )

    content = models.TextField(
        _('content'),
        blank=True,
        default='',
        validators=[MaxLengthValidator(1000)],
        help_text=_('Optional written feedback')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the review was created')
    )

    class Meta:
        verbose_name = _('review')
        verbose_name_plural = _('reviews')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['reviewee', 'created_at'], name='core_review_reviewee_idx'),
            models.Index(fields=['sale'], name='core_review_sale_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['sale', 'reviewer'],
                name='unique_review_per_sale_reviewer',
            ),
            models.CheckConstraint(
                condition=Q(rating__gte=1, rating__lte=5),
                name='review_rating_range',
            ),
            models.CheckConstraint(
                condition=~Q(reviewer=models.F('reviewee')),
                name='review_not_self',
            ),
        ]

    def __str__(self):
        return f'Review by {self.reviewer_id} for {self.reviewee_id} - {self.rating}★'

    def clean(self):
        """
        Ensures:
        - Reviewer and reviewee are different users
        - Reviewer and reviewee are the two participants of the sale
        """
        super().clean()

        if self.reviewer_id and self.reviewee_id and self.reviewer_id == self.reviewee_id:
            raise ValidationError({
                'reviewee': _('Reviewer and reviewee cannot be the same user.')
            })

        if self.sale_id and self.reviewer_id and self.reviewee_id:
            participants = {self.sale.buyer_id, self.sale.seller_id}
            if {self.reviewer_id, self.reviewee_id} != participants:
                raise ValidationError({
                    'reviewer': _('Reviewer and reviewee must be the buyer and seller of the sale.')
                })

    def save(self, *args, **kwargs):
        """
        Note: We don't call full_clean() here to allow the database-level
        unique constraint to raise IntegrityError as expected.
        """
        if not self.pk:
            self.clean()
        super().save(*args, **kwargs)


# ============================================================================
# Notification outbox
# ============================================================================

class NotificationEvent(models.Model):
    """
    Outbox row describing one email to send.

    Rows are written by signal handlers in the same transaction as the sale,
    review or chat message they describe and drained by the
    ``process_notifications`` command.
    """

    KIND_SALE_PROPOSED = 'sale_proposed'
    KIND_SALE_CONFIRMED = 'sale_confirmed'
    KIND_SALE_DECLINED = 'sale_declined'
    KIND_SALE_WITHDRAWN = 'sale_withdrawn'
    KIND_REVIEW_RECEIVED = 'review_received'
    KIND_MESSAGE_RECEIVED = 'message_received'

    KIND_CHOICES = [
        (KIND_SALE_PROPOSED, 'Sale proposed'),
        (KIND_SALE_CONFIRMED, 'Sale confirmed'),
        (KIND_SALE_DECLINED, 'Sale declined'),
        (KIND_SALE_WITHDRAWN, 'Sale withdrawn'),
        (KIND_REVIEW_RECEIVED, 'Review received'),
        (KIND_MESSAGE_RECEIVED, 'Message received'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_FAILED = 'failed'
    STATUS_SKIPPED = 'skipped'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_SENT, 'Sent'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_SKIPPED, 'Skipped'),
    ]

    kind = models.CharField(_('kind'), max_length=30, choices=KIND_CHOICES)

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notification_events'
    )

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notification_events'
    )

    review = models.ForeignKey(
        Review,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notification_events'
    )

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notification_events'
    )

    payload = models.JSONField(
        _('payload'),
        default=dict,
        blank=True,
        help_text=_('Template context captured at enqueue time')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING
    )

    attempts = models.PositiveIntegerField(_('attempts'), default=0)

    last_error = models.TextField(_('last error'), blank=True, default='')

    next_attempt_at = models.DateTimeField(_('next attempt at'), default=timezone.now)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    processed_at = models.DateTimeField(_('processed at'), null=True, blank=True)

    class Meta:
        verbose_name = _('notification event')
        verbose_name_plural = _('notification events')
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['status', 'next_attempt_at'], name='core_notifi_status_next_idx'),
        ]

    def __str__(self):
        return f'{self.kind} -> {self.recipient_id} ({self.status})'
