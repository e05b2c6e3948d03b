from django.contrib import admin
from .models import Dispute, DisputeFollowup

class DisputeFollowupInline(admin.TabularInline):
    model = DisputeFollowup
    extra = 0
    readonly_fields = ('sender', 'message', 'evidence', 'created_at')

@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    list_display = ('id', 'assignment', 'initiator', 'status', 'has_response', 'resolved_by', 'created_at')
    list_filter = ('status', 'has_response')
    search_fields = ('assignment__title', 'initiator__username', 'reason')
    inlines = [DisputeFollowupInline]
