from django.contrib import admin
from .models import Message, SupportChatSession, SupportMessage

@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('assignment', 'sender', 'receiver', 'kind', 'is_read', 'created_at')
    list_filter = ('kind', 'is_read')
    search_fields = ('content', 'sender__username', 'receiver__username')

class SupportMessageInline(admin.TabularInline):
    model = SupportMessage
    extra = 0
    fields = ('sender', 'content', 'is_read', 'created_at')
    readonly_fields = ('created_at',)

@admin.register(SupportChatSession)
class SupportChatSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'title', 'status', 'updated_at')
    list_filter = ('status',)
    search_fields = ('title', 'user__username', 'user__email')
    inlines = [SupportMessageInline]
