"""
Agrostock Admin.

Tenancy rows and lots are editable. Positions, movements and items are
read-only: stock only changes through the ledger and the movement engine.

- Company / Farm / Sector / Product: list + edit
- Lot: edit with "mark consumed" action
- StockPosition: read-only (on-hand, reserved, available, average cost)
- Movement: read-only audit trail with approve/confirm/cancel actions
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from agrostock.exceptions import StockError
from agrostock.models import (
    Company,
    Farm,
    Lot,
    LotStatus,
    Movement,
    MovementItem,
    MovementStatus,
    Product,
    Sector,
    StockPosition,
)

logger = logging.getLogger('agrostock')


class ReadOnlyAdminMixin:
    """No add, change or delete from the admin."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# TENANCY
# =========================================================================

@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ['name', 'document', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'document']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Farm)
class FarmAdmin(admin.ModelAdmin):
    list_display = ['name', 'company', 'is_active']
    list_filter = ['is_active', 'company']
    search_fields = ['name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Sector)
class SectorAdmin(admin.ModelAdmin):
    list_display = ['name', 'farm', 'kind', 'max_capacity', 'capacity_unit', 'is_active']
    list_filter = ['kind', 'is_active', 'farm']
    search_fields = ['name', 'farm__name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'internal_code', 'company', 'category', 'unit',
                    'minimum_stock', 'maximum_stock', 'is_active']
    list_filter = ['category', 'is_active', 'company']
    search_fields = ['name', 'internal_code']
    readonly_fields = ['created_at', 'updated_at']


# =========================================================================
# LOT ADMIN
# =========================================================================

@admin.register(Lot)
class LotAdmin(admin.ModelAdmin):
    """Lot admin — traceability, consumption via action only."""

    list_display = ['lot_number', 'product', 'manufacture_date', 'expiry_date',
                    'initial_quantity', 'status', 'expiry_status_display']
    list_filter = ['status', 'expiry_date']
    search_fields = ['lot_number', 'supplier', 'product__name']
    readonly_fields = ['status', 'consumed_at', 'consumed_by', 'created_at', 'updated_at']
    actions = ['mark_consumed']

    @admin.display(description=_('Vencimento'))
    def expiry_status_display(self, obj):
        from agrostock.expiry import classify

        return classify(obj).label

    @admin.action(description=_('Marcar lotes selecionados como consumidos'))
    def mark_consumed(self, request, queryset):
        from agrostock.services.lots import LotTracker

        count = 0
        for lot in queryset.filter(status=LotStatus.ACTIVE).select_related('product'):
            try:
                LotTracker.mark_consumed(lot.product.company_id, lot, user=request.user)
                count += 1
            except StockError as exc:
                logger.warning(
                    "admin.lot.mark_consumed.failed",
                    extra={"lot_id": lot.pk, "code": exc.code},
                )

        self.message_user(request, _('{count} lote(s) marcado(s) como consumido(s).').format(count=count))


# =========================================================================
# POSITION ADMIN (read-only)
# =========================================================================

@admin.register(StockPosition)
class StockPositionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Position admin — read-only. Stock only changes via the ledger."""

    list_display = ['product', 'sector', 'lot', 'quantity_on_hand', 'quantity_reserved',
                    'available_display', 'average_cost', 'last_movement_at']
    list_filter = ['sector__farm', 'sector']
    search_fields = ['product__name', 'product__internal_code', 'lot__lot_number']
    list_select_related = ['product', 'sector', 'lot']

    @admin.display(description=_('Disponível'))
    def available_display(self, obj):
        return obj.quantity_available


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

class MovementItemInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = MovementItem
    extra = 0
    fields = ['product', 'lot', 'quantity', 'unit_value', 'total_value', 'cost_basis', 'notes']
    readonly_fields = fields


@admin.register(Movement)
class MovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Movement admin — read-only with workflow actions."""

    list_display = ['document_number', 'movement_type', 'movement_date', 'farm',
                    'origin_sector', 'destination_sector', 'total_value', 'status']
    list_filter = ['movement_type', 'status', 'farm']
    search_fields = ['document_number', 'notes']
    date_hierarchy = 'movement_date'
    inlines = [MovementItemInline]
    actions = ['approve_movements', 'confirm_movements', 'cancel_movements']

    def _run(self, request, queryset, operation, status, **kwargs):
        count = 0
        for movement in queryset.filter(status__in=status):
            try:
                operation(movement.company_id, movement, user=request.user, **kwargs)
                count += 1
            except StockError as exc:
                logger.warning(
                    "admin.movement.action.failed",
                    extra={"movement_id": movement.pk, "code": exc.code},
                )
        return count

    @admin.action(description=_('Aprovar movimentações selecionadas'))
    def approve_movements(self, request, queryset):
        from agrostock.services.movements import MovementEngine

        count = self._run(request, queryset, MovementEngine.approve, [MovementStatus.PENDING])
        self.message_user(request, _('{count} movimentação(ões) aprovada(s).').format(count=count))

    @admin.action(description=_('Confirmar movimentações selecionadas'))
    def confirm_movements(self, request, queryset):
        from agrostock.services.movements import MovementEngine

        count = self._run(request, queryset, MovementEngine.confirm, [MovementStatus.APPROVED])
        self.message_user(request, _('{count} movimentação(ões) confirmada(s).').format(count=count))

    @admin.action(description=_('Cancelar movimentações selecionadas'))
    def cancel_movements(self, request, queryset):
        from agrostock.services.movements import MovementEngine

        count = self._run(
            request, queryset, MovementEngine.cancel,
            [MovementStatus.PENDING, MovementStatus.APPROVED, MovementStatus.CONFIRMED],
            reason='Cancelado via admin',
        )
        self.message_user(request, _('{count} movimentação(ões) cancelada(s).').format(count=count))
