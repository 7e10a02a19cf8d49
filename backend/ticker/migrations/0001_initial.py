# Generated migration for ticker app

from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='TickerItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=150)),
                ('category', models.CharField(choices=[('new-spots', 'New spots'), ('featured', 'Featured'), ('events', 'Events'), ('tips', 'Tips'), ('offers', 'Offers'), ('updates', 'Updates'), ('seasonal', 'Seasonal')], max_length=20)),
                ('link_url', models.CharField(blank=True, max_length=2048, null=True)),
                ('priority', models.CharField(default='50', help_text='Numeric string 0-100, higher shows first', max_length=3)),
                ('end_date', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'ticker_items',
            },
        ),
    ]
