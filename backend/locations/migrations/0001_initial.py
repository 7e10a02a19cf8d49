# Generated migration for locations app

from django.db import migrations, models
import django.core.validators
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255, unique=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'categories',
                'verbose_name_plural': 'categories',
            },
        ),
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('slug', models.CharField(help_text='URL-safe identifier used in /location/<slug>', max_length=255, unique=True, validators=[django.core.validators.RegexValidator("^[a-z0-9]+(?:-[a-z0-9]+)*$", "Slug may only contain lower-case letters, digits and single hyphens")])),
                ('name', models.CharField(max_length=255)),
                ('category', models.CharField(help_text='Matches Category.name (soft reference)', max_length=255)),
                ('neighborhood', models.CharField(max_length=255)),
                ('description', models.TextField()),
                ('address', models.CharField(blank=True, max_length=512, null=True)),
                ('latitude', models.CharField(max_length=32)),
                ('longitude', models.CharField(max_length=32)),
                ('images', models.JSONField(blank=True, default=list)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('tag_index', models.TextField(blank=True, default='', editable=False)),
                ('featured', models.BooleanField(default=False)),
                ('related_location_ids', models.JSONField(blank=True, default=list, help_text="Ids of other locations shown under 'Continue your adventure' (not enforced)")),
                ('instagram_hashtag', models.CharField(blank=True, max_length=255, null=True)),
                ('current_post_count', models.IntegerField(default=0)),
                ('previous_post_count', models.IntegerField(default=0)),
                ('trending_score', models.FloatField(default=0.0)),
                ('social_last_updated', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'locations',
                'indexes': [
                    models.Index(fields=['category'], name='locations_category_idx'),
                    models.Index(fields=['featured'], name='locations_featured_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InsiderTip',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('question', models.TextField()),
                ('answer', models.TextField()),
                ('icon', models.CharField(choices=[('wifi', 'WiFi'), ('dog', 'Dog friendly'), ('camera', 'Photo spot'), ('clock', 'Timing'), ('utensils', 'Food'), ('car', 'Parking'), ('wallet', 'Cost'), ('users', 'Crowds'), ('sun', 'Weather'), ('map-pin', 'Getting there'), ('info', 'Info'), ('star', 'Highlight'), ('image', 'Image')], default='info', max_length=20)),
                ('images', models.JSONField(blank=True, default=list)),
                ('sort_order', models.CharField(default='0', help_text='Numeric string, ascending', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='insider_tips', to='locations.location')),
            ],
            options={
                'db_table': 'insider_tips',
            },
        ),
    ]
