from django.contrib import admin
from .models import TickerItem


@admin.register(TickerItem)
class TickerItemAdmin(admin.ModelAdmin):
    list_display = ['title', 'category', 'priority', 'is_active', 'end_date', 'created_at']
    list_filter = ['category', 'is_active']
    search_fields = ['title']
    readonly_fields = ['id', 'created_at']
