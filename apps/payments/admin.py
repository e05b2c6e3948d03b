from django.contrib import admin
from .models import Payment

@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('assignment', 'payer', 'payee', 'amount', 'currency', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('assignment__title', 'payer__username', 'payee__username')
