from django.contrib import admin
from .models import ManagementLog

@admin.register(ManagementLog)
class ManagementLogAdmin(admin.ModelAdmin):
    list_display = ('admin', 'action', 'timestamp')
    list_filter = ('action',)
    search_fields = ('details', 'admin__username')
    readonly_fields = ('admin', 'action', 'details', 'timestamp')
