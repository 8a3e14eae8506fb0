"""
Django admin configuration for orders app.
Order totals and items are read-only; status changes go through OrderStatusService.
"""

from typing import ClassVar

from django.contrib import admin

from .models import Order, OrderItem, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    """Inline admin for order items."""
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields: ClassVar[list[str]] = (
        'product_id', 'bundle_id', 'offer_id', 'title', 'quantity', 'price', 'option', 'created_at'
    )
    fields: ClassVar[list[str]] = readonly_fields


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields: ClassVar[list[str]] = ('old_status', 'new_status', 'changed_by', 'notes', 'created_at')
    fields: ClassVar[list[str]] = readonly_fields


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin interface for orders."""

    list_display: ClassVar[list[str]] = (
        'reference', 'user', 'status', 'payment_status', 'total_amount',
        'is_first_order', 'created_at'
    )
    list_filter: ClassVar[list[str]] = (
        'status', 'payment_status', 'payment_method', 'is_first_order', 'created_at'
    )
    search_fields: ClassVar[list[str]] = ('reference', 'user__email')
    readonly_fields: ClassVar[list[str]] = (
        'reference', 'user', 'status', 'total_amount', 'delivery_fee', 'voucher',
        'is_first_order', 'created_at', 'updated_at'
    )
    inlines: ClassVar[list] = [OrderItemInline, OrderStatusHistoryInline]

    fieldsets: ClassVar[tuple] = (
        ('Order Information', {
            'fields': ('reference', 'user', 'status', 'payment_status', 'payment_method')
        }),
        ('Financial Details', {
            'fields': ('total_amount', 'delivery_fee', 'voucher', 'is_first_order')
        }),
        ('Delivery', {
            'fields': ('shipping_address', 'note'),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )


@admin.register(OrderStatusHistory)
class OrderStatusHistoryAdmin(admin.ModelAdmin):
    """Admin interface for order status history."""

    list_display: ClassVar[list[str]] = (
        'order', 'old_status', 'new_status', 'changed_by', 'created_at'
    )
    list_filter: ClassVar[list[str]] = ('old_status', 'new_status', 'created_at')
    search_fields: ClassVar[list[str]] = ('order__reference', 'notes')
    readonly_fields: ClassVar[list[str]] = ('created_at',)
