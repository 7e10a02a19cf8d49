"""
DRF Serializers for locations, categories and insider tips.
"""
from rest_framework import serializers
from .models import Category, InsiderTip, Location, SLUG_PATTERN, TAG_SEPARATOR


def validate_coordinate(value, bound: float, label: str) -> str:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise serializers.ValidationError(f"{label} must be a decimal number")
    if not -bound <= number <= bound:
        raise serializers.ValidationError(f"{label} must be between -{bound:g} and {bound:g}")
    return str(value).strip()


class CategorySerializer(serializers.ModelSerializer):
    # Uniqueness is enforced by CategoryService so renames get one message.
    name = serializers.CharField(max_length=255)

    class Meta:
        model = Category
        fields = ['id', 'name', 'description', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class LocationSerializer(serializers.ModelSerializer):
    """Full location representation used by every location endpoint."""

    slug = serializers.RegexField(
        SLUG_PATTERN,
        max_length=255,
        required=False,
        allow_blank=True,
        error_messages={'invalid': "Slug may only contain lower-case letters, digits and single hyphens"},
    )
    images = serializers.ListField(child=serializers.CharField(max_length=2048), required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=100, allow_blank=True), required=False)
    related_location_ids = serializers.ListField(child=serializers.UUIDField(), required=False)

    class Meta:
        model = Location
        fields = [
            'id',
            'slug',
            'name',
            'category',
            'neighborhood',
            'description',
            'address',
            'latitude',
            'longitude',
            'images',
            'tags',
            'featured',
            'related_location_ids',
            'instagram_hashtag',
            'current_post_count',
            'previous_post_count',
            'trending_score',
            'social_last_updated',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id',
            'current_post_count',
            'previous_post_count',
            'trending_score',
            'social_last_updated',
            'created_at',
            'updated_at',
        ]

    def validate_slug(self, value):
        if not value:
            return value
        queryset = Location.objects.filter(slug=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("A location with this slug already exists")
        return value

    def validate_latitude(self, value):
        return validate_coordinate(value, 90, 'Latitude')

    def validate_longitude(self, value):
        return validate_coordinate(value, 180, 'Longitude')

    def validate_tags(self, value):
        tags = [tag.strip() for tag in value if tag.strip()]
        if any(TAG_SEPARATOR in tag for tag in tags):
            raise serializers.ValidationError(f"Tags may not contain '{TAG_SEPARATOR}'")
        return tags

    def validate_instagram_hashtag(self, value):
        if value is None:
            return None
        value = value.strip().lstrip('#')
        return value or None

    def validate_related_location_ids(self, value):
        own_id = str(self.instance.pk) if self.instance is not None else None
        return [str(pk) for pk in value if str(pk) != own_id]

    def create(self, validated_data):
        if not validated_data.get('slug'):
            validated_data['slug'] = Location.unique_slug_for(validated_data.get('name', ''))
            if not validated_data['slug']:
                raise serializers.ValidationError({'slug': ["A slug could not be derived from the name"]})
        return super().create(validated_data)

    def update(self, instance, validated_data):
        if 'slug' in validated_data and not validated_data['slug']:
            validated_data.pop('slug')
        return super().update(instance, validated_data)


class InsiderTipSerializer(serializers.ModelSerializer):
    location_id = serializers.PrimaryKeyRelatedField(
        source='location',
        queryset=Location.objects.all(),
    )
    images = serializers.ListField(child=serializers.CharField(max_length=2048), required=False)
    sort_order = serializers.CharField(max_length=10, required=False)

    class Meta:
        model = InsiderTip
        fields = [
            'id',
            'location_id',
            'question',
            'answer',
            'icon',
            'images',
            'sort_order',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_sort_order(self, value):
        try:
            return str(int(value))
        except (TypeError, ValueError):
            raise serializers.ValidationError("Sort order must be a whole number")
