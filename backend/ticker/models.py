import uuid
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import IntegerField, Q
from django.db.models.functions import Cast
from django.utils import timezone


def validate_priority(value):
    """Priority is stored as text but must read as a whole number from 0 to 100."""
    if not str(value).isdecimal() or not 0 <= int(value) <= 100:
        raise ValidationError("Priority must be a whole number between 0 and 100", code='invalid_priority')


class TickerItemQuerySet(models.QuerySet):

    def by_priority(self):
        """Highest integer priority first, newest first within a priority."""
        return self.annotate(
            priority_value=Cast('priority', IntegerField())
        ).order_by('-priority_value', '-created_at')

    def active(self, now=None):
        """Items switched on whose end date, if any, has not passed yet."""
        now = now or timezone.now()
        return self.filter(is_active=True).filter(
            Q(end_date__isnull=True) | Q(end_date__gt=now)
        )


class TickerItem(models.Model):
    """
    A short announcement shown in the site's news ticker.
    """

    class Category(models.TextChoices):
        NEW_SPOTS = 'new-spots', 'New spots'
        FEATURED = 'featured', 'Featured'
        EVENTS = 'events', 'Events'
        TIPS = 'tips', 'Tips'
        OFFERS = 'offers', 'Offers'
        UPDATES = 'updates', 'Updates'
        SEASONAL = 'seasonal', 'Seasonal'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=150)
    category = models.CharField(max_length=20, choices=Category.choices)
    link_url = models.CharField(max_length=2048, null=True, blank=True)
    priority = models.CharField(
        max_length=3, default='50', validators=[validate_priority],
        help_text="Numeric string 0-100, higher shows first",
    )
    end_date = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = TickerItemQuerySet.as_manager()

    class Meta:
        db_table = 'ticker_items'

    def __str__(self):
        return self.title
