# Generated migration for ticker app

from django.db import migrations, models
import ticker.models


class Migration(migrations.Migration):

    dependencies = [
        ('ticker', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='tickeritem',
            name='priority',
            field=models.CharField(default='50', help_text='Numeric string 0-100, higher shows first', max_length=3, validators=[ticker.models.validate_priority]),
        ),
    ]
