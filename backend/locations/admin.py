from django.contrib import admin
from .models import Category, InsiderTip, Location
from .services import CategoryService


class InsiderTipInline(admin.TabularInline):
    model = InsiderTip
    extra = 0
    fields = ['question', 'answer', 'icon', 'sort_order']


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    """
    Admin interface for curated locations.
    Social trend counters are filled by the refresh job and stay read-only.
    """
    list_display = ['name', 'category', 'neighborhood', 'featured', 'trending_score', 'updated_at']
    list_filter = ['featured', 'category', 'neighborhood']
    search_fields = ['name', 'slug', 'description', 'address']
    readonly_fields = [
        'id', 'current_post_count', 'previous_post_count', 'trending_score',
        'social_last_updated', 'created_at', 'updated_at',
    ]
    inlines = [InsiderTipInline]

    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'slug', 'name', 'category', 'neighborhood', 'description', 'address')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude')
        }),
        ('Media & Tags', {
            'fields': ('images', 'tags', 'featured', 'related_location_ids')
        }),
        ('Social Trends', {
            'fields': (
                'instagram_hashtag', 'current_post_count', 'previous_post_count',
                'trending_score', 'social_last_updated',
            )
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'description', 'updated_at']
    search_fields = ['name']
    readonly_fields = ['id', 'created_at', 'updated_at']

    def save_model(self, request, obj, form, change):
        if change and 'name' in form.changed_data:
            # Route renames through the service so locations follow.
            CategoryService.update_category(Category.objects.get(pk=obj.pk), form.cleaned_data)
        else:
            super().save_model(request, obj, form, change)
