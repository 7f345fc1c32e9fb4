import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Favorite',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='favorites', to=settings.AUTH_USER_MODEL)),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='favorites', to='core.product')),
                ('room', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='favorites', to='core.rehearsalroom')),
            ],
            options={
                'verbose_name': 'favorite',
                'verbose_name_plural': 'favorites',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', 'created_at'], name='core_favori_user_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('product__isnull', False), ('room__isnull', True)), models.Q(('product__isnull', True), ('room__isnull', False)), _connector='OR'), name='favorite_exactly_one_item'),
                    models.UniqueConstraint(condition=models.Q(('product__isnull', False)), fields=('user', 'product'), name='unique_favorite_per_user_product'),
                    models.UniqueConstraint(condition=models.Q(('room__isnull', False)), fields=('user', 'room'), name='unique_favorite_per_user_room'),
                ],
            },
        ),
        migrations.AlterField(
            model_name='notificationevent',
            name='kind',
            field=models.CharField(choices=[('sale_proposed', 'Sale proposed'), ('sale_confirmed', 'Sale confirmed'), ('sale_declined', 'Sale declined'), ('sale_withdrawn', 'Sale withdrawn'), ('review_received', 'Review received'), ('message_received', 'Message received')], max_length=30, verbose_name='kind'),
        ),
        migrations.AddField(
            model_name='notificationevent',
            name='chat',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='notification_events', to='core.chat'),
        ),
    ]
