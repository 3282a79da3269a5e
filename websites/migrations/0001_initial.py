import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Website',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('domain', models.CharField(help_text='Bare domain, e.g. shop.example.com', max_length=255)),
                ('integration_type', models.CharField(default='wordpress', help_text='wordpress, shopify or any other CMS name', max_length=50)),
                ('plan', models.CharField(default='Free', max_length=50)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], default='active', max_length=20)),
                ('monthly_queries', models.PositiveIntegerField(default=0)),
                ('query_limit', models.IntegerField(default=5000, help_text='Monthly query ceiling (advisory, not enforced)')),
                ('last_sync', models.DateTimeField(blank=True, help_text='Null until the first sync lands', null=True)),
                ('sync_requested_at', models.DateTimeField(blank=True, help_text='When a sync was last dispatched from the dashboard', null=True)),
                ('access_key', models.CharField(blank=True, help_text='Key the CMS plugin/app uses to push data', max_length=128, null=True, unique=True)),
                ('ai_redirects', models.PositiveIntegerField(default=0)),
                ('total_redirects', models.PositiveIntegerField(default=0)),
                ('total_ai_redirects', models.PositiveIntegerField(default=0)),
                ('total_voice_chats', models.PositiveIntegerField(default=0)),
                ('total_text_chats', models.PositiveIntegerField(default=0)),
                ('stripe_customer_id', models.CharField(blank=True, max_length=255, null=True)),
                ('stripe_subscription_id', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='websites', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'websites',
                'ordering': ['-created_at'],
                'unique_together': {('user', 'domain')},
            },
        ),
        migrations.CreateModel(
            name='ContentItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('external_id', models.CharField(help_text='CMS identifier, unique per website', max_length=255)),
                ('kind', models.CharField(choices=[('product', 'Product'), ('post', 'Post'), ('page', 'Page')], max_length=20)),
                ('title', models.CharField(max_length=500)),
                ('url', models.CharField(help_text='Path relative to the website domain', max_length=1000)),
                ('summary', models.TextField(blank=True)),
                ('last_updated', models.DateTimeField(blank=True, null=True)),
                ('ai_redirects', models.PositiveIntegerField(default=0)),
                ('price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('author', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('website', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='content_items', to='websites.website')),
            ],
            options={
                'db_table': 'content_items',
                'ordering': ['kind', '-last_updated', 'id'],
                'indexes': [models.Index(fields=['website', 'kind'], name='content_items_website_kind_idx')],
                'unique_together': {('website', 'external_id')},
            },
        ),
    ]
