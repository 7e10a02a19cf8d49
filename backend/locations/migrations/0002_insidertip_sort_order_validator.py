# Generated migration for locations app

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('locations', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='insidertip',
            name='sort_order',
            field=models.CharField(default='0', help_text='Numeric string, ascending', max_length=10, validators=[django.core.validators.RegexValidator('^-?\\d+$', 'Sort order must be a whole number')]),
        ),
    ]
