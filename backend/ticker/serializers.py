from rest_framework import serializers
from .models import TickerItem


class TickerItemSerializer(serializers.ModelSerializer):
    priority = serializers.CharField(max_length=3, required=False)

    class Meta:
        model = TickerItem
        fields = [
            'id',
            'title',
            'category',
            'link_url',
            'priority',
            'end_date',
            'is_active',
            'created_at',
        ]
        read_only_fields = ['id', 'created_at']

    def to_internal_value(self, data):
        # Admin forms send empty strings for cleared optional fields.
        if hasattr(data, 'copy'):
            data = data.copy()
            for key in ('link_url', 'end_date'):
                if data.get(key) == '':
                    data[key] = None
        return super().to_internal_value(data)

    def validate_priority(self, value):
        try:
            priority = int(value)
        except (TypeError, ValueError):
            raise serializers.ValidationError("Priority must be a whole number")
        if not 0 <= priority <= 100:
            raise serializers.ValidationError("Priority must be between 0 and 100")
        return str(priority)
