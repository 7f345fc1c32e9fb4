import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import core.models
import core.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('avatar', models.ImageField(blank=True, help_text='Optional. Upload a profile picture (max 5MB, formats: jpg, png, webp).', null=True, upload_to=core.models.user_avatar_upload_path, validators=[core.validators.validate_avatar_image], verbose_name='avatar')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email'], name='core_user_email_idx')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(choices=[('drums', 'Drums'), ('guitar', 'Guitar'), ('bass', 'Bass'), ('keyboards', 'Keyboards'), ('wind', 'Wind instruments'), ('studio', 'Studio equipment'), ('strings', 'Strings')], help_text='Marketplace category', max_length=20, verbose_name='category')),
                ('type', models.CharField(help_text='What kind of item this is, e.g. "Electric guitar"', max_length=100, verbose_name='type')),
                ('brand', models.CharField(blank=True, default='', max_length=100, verbose_name='brand')),
                ('model', models.CharField(blank=True, default='', max_length=100, verbose_name='model')),
                ('description', models.TextField(blank=True, default='', help_text='Free-text description, at most 5000 characters', validators=[django.core.validators.MaxLengthValidator(5000)], verbose_name='description')),
                ('price', models.DecimalField(blank=True, decimal_places=2, help_text='Asking price in DKK; empty means price on request', max_digits=10, null=True, validators=[core.validators.validate_listing_price], verbose_name='price')),
                ('location', models.CharField(blank=True, default='', max_length=200, verbose_name='location')),
                ('condition', models.CharField(blank=True, default='', max_length=50, verbose_name='condition')),
                ('year', models.PositiveSmallIntegerField(blank=True, help_text='Production year', null=True, validators=[core.validators.validate_listing_year], verbose_name='year')),
                ('image_urls', models.JSONField(default=list, help_text='Between 1 and 10 image URLs', validators=[core.validators.validate_image_urls], verbose_name='image URLs')),
                ('sold', models.BooleanField(default=False, help_text='True while a sale for this product is pending or completed', verbose_name='sold')),
                ('sold_at', models.DateTimeField(blank=True, help_text='When the item was marked sold; reset on sale completion', null=True, verbose_name='sold at')),
                ('is_soft_deleted', models.BooleanField(default=False, help_text='Hidden from listings but kept for sale history', verbose_name='soft deleted')),
                ('deleted_at', models.DateTimeField(blank=True, null=True, verbose_name='deleted at')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('owner', models.ForeignKey(help_text='User selling the item', on_delete=django.db.models.deletion.CASCADE, related_name='products', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'product',
                'verbose_name_plural': 'products',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner'], name='core_produc_owner_idx'),
                    models.Index(fields=['category'], name='core_produc_categor_idx'),
                    models.Index(fields=['sold', 'is_soft_deleted'], name='core_produc_sold_idx'),
                    models.Index(fields=['created_at'], name='core_produc_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RehearsalRoom',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, default='', max_length=200, verbose_name='name')),
                ('type', models.CharField(choices=[('studio', 'Music studio'), ('rehearsal', 'Rehearsal room'), ('other', 'Other')], max_length=50, verbose_name='type')),
                ('description', models.TextField(blank=True, default='', validators=[django.core.validators.MaxLengthValidator(5000)], verbose_name='description')),
                ('address', models.CharField(blank=True, default='', max_length=500, verbose_name='address')),
                ('location', models.CharField(blank=True, default='', max_length=200, verbose_name='location')),
                ('room_size', models.DecimalField(blank=True, decimal_places=2, help_text='Size in square metres', max_digits=7, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(10000)], verbose_name='room size')),
                ('price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[core.validators.validate_listing_price], verbose_name='price')),
                ('payment_type', models.CharField(blank=True, choices=[('per_hour', 'Per hour'), ('per_month', 'Per month')], default='', max_length=50, verbose_name='payment type')),
                ('image_urls', models.JSONField(default=list, validators=[core.validators.validate_image_urls], verbose_name='image URLs')),
                ('rented', models.BooleanField(default=False, verbose_name='rented')),
                ('rented_at', models.DateTimeField(blank=True, null=True, verbose_name='rented at')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('owner', models.ForeignKey(help_text='User renting out the room', on_delete=django.db.models.deletion.CASCADE, related_name='rehearsal_rooms', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'rehearsal room',
                'verbose_name_plural': 'rehearsal rooms',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['owner'], name='core_rehear_owner_idx'),
                    models.Index(fields=['rented'], name='core_rehear_rented_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Chat',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('deleted_by_buyer', models.BooleanField(default=False, verbose_name='deleted by buyer')),
                ('deleted_by_seller', models.BooleanField(default=False, verbose_name='deleted by seller')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Bumped on every new message', verbose_name='updated at')),
                ('buyer', models.ForeignKey(help_text='User who started the conversation', on_delete=django.db.models.deletion.CASCADE, related_name='buyer_chats', to=settings.AUTH_USER_MODEL)),
                ('seller', models.ForeignKey(help_text='Owner of the listing', on_delete=django.db.models.deletion.CASCADE, related_name='seller_chats', to=settings.AUTH_USER_MODEL)),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='chats', to='core.product')),
                ('room', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='chats', to='core.rehearsalroom')),
            ],
            options={
                'verbose_name': 'chat',
                'verbose_name_plural': 'chats',
                'ordering': ['-updated_at'],
                'indexes': [
                    models.Index(fields=['buyer'], name='core_chat_buyer_idx'),
                    models.Index(fields=['seller'], name='core_chat_seller_idx'),
                    models.Index(fields=['product'], name='core_chat_product_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('product__isnull', False), ('room__isnull', True)), models.Q(('product__isnull', True), ('room__isnull', False)), _connector='OR'), name='chat_exactly_one_item'),
                    models.CheckConstraint(condition=models.Q(('buyer', models.F('seller')), _negated=True), name='chat_buyer_not_seller'),
                    models.UniqueConstraint(condition=models.Q(('product__isnull', False)), fields=('buyer', 'product'), name='unique_chat_per_buyer_product'),
                    models.UniqueConstraint(condition=models.Q(('room__isnull', False)), fields=('buyer', 'room'), name='unique_chat_per_buyer_room'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Message',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content', models.TextField(help_text='Message text, 1 to 1000 characters', validators=[django.core.validators.MaxLengthValidator(1000)], verbose_name='content')),
                ('is_read', models.BooleanField(default=False, verbose_name='read')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('chat', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='core.chat')),
                ('sender', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sent_messages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'message',
                'verbose_name_plural': 'messages',
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['chat', 'created_at'], name='core_messag_chat_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='Sale',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='status')),
                ('completed_at', models.DateTimeField(blank=True, help_text='When the buyer confirmed; starts the review window', null=True, verbose_name='completed at')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='cancelled at')),
                ('cancel_reason', models.CharField(blank=True, choices=[('', 'None'), ('declined', 'Declined by buyer'), ('withdrawn', 'Withdrawn by seller')], default='', max_length=20, verbose_name='cancel reason')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('product', models.ForeignKey(help_text='Product being sold', on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='core.product')),
                ('buyer', models.ForeignKey(help_text='User buying the product', on_delete=django.db.models.deletion.CASCADE, related_name='purchases', to=settings.AUTH_USER_MODEL)),
                ('seller', models.ForeignKey(help_text='User selling the product', on_delete=django.db.models.deletion.CASCADE, related_name='sales', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'sale',
                'verbose_name_plural': 'sales',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['buyer', 'status'], name='core_sale_buyer_status_idx'),
                    models.Index(fields=['seller', 'status'], name='core_sale_seller_status_idx'),
                    models.Index(fields=['completed_at'], name='core_sale_completed_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ('pending', 'completed'))), fields=('product',), name='unique_active_sale_per_product'),
                    models.CheckConstraint(condition=models.Q(('buyer', models.F('seller')), _negated=True), name='sale_buyer_not_seller'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rating', models.PositiveSmallIntegerField(help_text='Rating from 1 to 5 stars', validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='rating')),
                ('content', models.TextField(blank=True, default='', help_text='Optional written feedback', validators=[django.core.validators.MaxLengthValidator(1000)], verbose_name='content')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the review was created', verbose_name='created at')),
                ('sale', models.ForeignKey(help_text='Sale being reviewed', on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='core.sale')),
                ('reviewer', models.ForeignKey(help_text='User writing the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_given', to=settings.AUTH_USER_MODEL)),
                ('reviewee', models.ForeignKey(help_text='User receiving the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_received', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'review',
                'verbose_name_plural': 'reviews',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['reviewee', 'created_at'], name='core_review_reviewee_idx'),
                    models.Index(fields=['sale'], name='core_review_sale_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('sale', 'reviewer'), name='unique_review_per_sale_reviewer'),
                    models.CheckConstraint(condition=models.Q(('rating__gte', 1), ('rating__lte', 5)), name='review_rating_range'),
                    models.CheckConstraint(condition=models.Q(('reviewer', models.F('reviewee')), _negated=True), name='review_not_self'),
                ],
            },
        ),
        migrations.CreateModel(
            name='NotificationEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('sale_proposed', 'Sale proposed'), ('sale_confirmed', 'Sale confirmed'), ('sale_declined', 'Sale declined'), ('sale_withdrawn', 'Sale withdrawn'), ('review_received', 'Review received')], max_length=30, verbose_name='kind')),
                ('payload', models.JSONField(blank=True, default=dict, help_text='Template context captured at enqueue time', verbose_name='payload')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('sent', 'Sent'), ('failed', 'Failed'), ('skipped', 'Skipped')], default='pending', max_length=20, verbose_name='status')),
                ('attempts', models.PositiveIntegerField(default=0, verbose_name='attempts')),
                ('last_error', models.TextField(blank=True, default='', verbose_name='last error')),
                ('next_attempt_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='next attempt at')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('processed_at', models.DateTimeField(blank=True, null=True, verbose_name='processed at')),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notification_events', to=settings.AUTH_USER_MODEL)),
                ('sale', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='notification_events', to='core.sale')),
                ('review', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='notification_events', to='core.review')),
            ],
            options={
                'verbose_name': 'notification event',
                'verbose_name_plural': 'notification events',
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['status', 'next_attempt_at'], name='core_notifi_status_next_idx')],
            },
        ),
    ]
