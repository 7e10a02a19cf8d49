import re
import unicodedata
import uuid
from django.core.validators import RegexValidator
from django.db import models
from django.db.models import IntegerField, Q
from django.db.models.functions import Cast


# Frames every entry of Location.tag_index so tag predicates can be expressed
# as plain substring lookups. Tags themselves may not contain it.
TAG_SEPARATOR = '|'

SLUG_PATTERN = r'^[a-z0-9]+(?:-[a-z0-9]+)*$'
slug_validator = RegexValidator(SLUG_PATTERN, "Slug may only contain lower-case letters, digits and single hyphens")
sort_order_validator = RegexValidator(r"^-?\d+$", "Sort order must be a whole number")


def slugify_name(name: str) -> str:
    """ASCII-folded and lower-cased, runs of anything but a-z and 0-9 collapsed to a hyphen."""
    ascii_name = unicodedata.normalize('NFKD', name or '').encode('ascii', 'ignore').decode('ascii')
    return re.sub(r'[^a-z0-9]+', '-', ascii_name.lower()).strip('-')


def as_list(value) -> list:
    """JSON list fields may be edited as a bare string; that counts as one entry."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def normalize_tags(tags) -> list:
    """Strip whitespace and drop empty entries, keeping the curator's casing."""
    return [str(tag).strip() for tag in as_list(tags) if str(tag).strip()]


def build_tag_index(tags) -> str:
    folded = [tag.lower() for tag in normalize_tags(tags)]
    if not folded:
        return ''
    return TAG_SEPARATOR + TAG_SEPARATOR.join(folded) + TAG_SEPARATOR


def tag_substring_q(text: str) -> Q:
    """Q object matching locations having any tag that contains `text`."""
    folded = text.lower()
    if not folded or TAG_SEPARATOR in folded:
        return Q(pk__in=[])
    return Q(tag_index__contains=folded)


class Category(models.Model):
    """
    Curated category. Locations reference a category by its name, not by a
    foreign key; renames are propagated by CategoryService.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, unique=True)
    description = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'

    def __str__(self):
        return self.name


class LocationQuerySet(models.QuerySet):

    def with_tag(self, tag: str):
        """Locations carrying `tag`, compared case-insensitively."""
        folded = tag.strip().lower()
        if not folded or TAG_SEPARATOR in folded:
            return self.none()
        return self.filter(tag_index__contains=f"{TAG_SEPARATOR}{folded}{TAG_SEPARATOR}")

    def featured(self):
        return self.filter(featured=True)

    def with_hashtags(self):
        return self.exclude(instagram_hashtag__isnull=True).exclude(instagram_hashtag='')

    def trending(self):
        return self.with_hashtags().filter(
            social_last_updated__isnull=False
        ).order_by('-trending_score', 'name')


class Location(models.Model):
    """
    A curated point of interest: cafe, restaurant, beach, hike, market, bar.
    Coordinates are kept as decimal text exactly as the curator entered them.
    """

    # Primary Key
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Basic Information
    slug = models.CharField(max_length=255, unique=True, validators=[slug_validator], help_text="URL-safe identifier used in /location/<slug>")
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=255, help_text="Matches Category.name (soft reference)")
    neighborhood = models.CharField(max_length=255)
    description = models.TextField()
    address = models.CharField(max_length=512, null=True, blank=True)

    # Coordinates as decimal text
    latitude = models.CharField(max_length=32)
    longitude = models.CharField(max_length=32)

    # Ordered; the first image is the thumbnail
    images = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    tag_index = models.TextField(default='', blank=True, editable=False)

    featured = models.BooleanField(default=False)
    related_location_ids = models.JSONField(
        default=list,
        blank=True,
        help_text="Ids of other locations shown under 'Continue your adventure' (not enforced)"
    )

    # Social trends
    instagram_hashtag = models.CharField(max_length=255, null=True, blank=True)
    current_post_count = models.IntegerField(default=0)
    previous_post_count = models.IntegerField(default=0)
    trending_score = models.FloatField(default=0.0)
    social_last_updated = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LocationQuerySet.as_manager()

    class Meta:
        db_table = 'locations'
        indexes = [
            models.Index(fields=['category'], name='locations_category_idx'),
            models.Index(fields=['featured'], name='locations_featured_idx'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        """
        Keeps tags normalised and the tag index in step with them, derives a
        slug from the name when none was given, and rejects coordinates that
        are not valid decimal degrees.
        """
        lat, lon = self.get_lat_lon()
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise ValueError("Invalid coordinates: latitude must be -90 to 90, longitude must be -180 to 180")

        self.tags = normalize_tags(self.tags)
        self.tag_index = build_tag_index(self.tags)
        self.images = as_list(self.images)
        self.related_location_ids = [str(pk) for pk in as_list(self.related_location_ids)]

        if not self.slug:
            self.slug = self.unique_slug_for(self.name, exclude_pk=self.pk)
        if not self.slug:
            raise ValueError("A slug could not be derived from the location name")

        super().save(*args, **kwargs)

    def get_lat_lon(self):
        """
        Coordinates as floats.

        Raises:
            ValueError: if either coordinate is not a number
        """
        try:
            return float(self.latitude), float(self.longitude)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid coordinates: {self.latitude!r}, {self.longitude!r}")

    @property
    def thumbnail(self):
        return self.images[0] if self.images else None

    @classmethod
    def unique_slug_for(cls, name: str, exclude_pk=None) -> str:
        base = slugify_name(name)
        if not base:
            return ''
        candidate = base
        suffix = 2
        others = cls.objects.all()
        if exclude_pk is not None:
            others = others.exclude(pk=exclude_pk)
        while others.filter(slug=candidate).exists():
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate


class InsiderTip(models.Model):
    """FAQ-style note shown on a location page and emitted as FAQPage data."""

    class Icon(models.TextChoices):
        WIFI = 'wifi', 'WiFi'
        DOG = 'dog', 'Dog friendly'
        CAMERA = 'camera', 'Photo spot'
        CLOCK = 'clock', 'Timing'
        UTENSILS = 'utensils', 'Food'
        CAR = 'car', 'Parking'
        WALLET = 'wallet', 'Cost'
        USERS = 'users', 'Crowds'
        SUN = 'sun', 'Weather'
        MAP_PIN = 'map-pin', 'Getting there'
        INFO = 'info', 'Info'
        STAR = 'star', 'Highlight'
        IMAGE = 'image', 'Image'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    location = models.ForeignKey(Location, on_delete=models.CASCADE, related_name='insider_tips')
    question = models.TextField()
    answer = models.TextField()
    icon = models.CharField(max_length=20, choices=Icon.choices, default=Icon.INFO)
    images = models.JSONField(default=list, blank=True)
    sort_order = models.CharField(
        max_length=10, default='0', validators=[sort_order_validator], help_text="Numeric string, ascending"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'insider_tips'

    def __str__(self):
        return self.question

    @classmethod
    def for_location(cls, location_id):
        return cls.objects.filter(location_id=location_id).annotate(
            sort_value=Cast('sort_order', IntegerField())
        ).order_by('sort_value', 'created_at')
