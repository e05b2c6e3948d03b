from django.contrib import admin
from .models import Assignment, Bid, Submission

@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ('title', 'poster', 'doer', 'category', 'budget', 'status', 'created_at')
    list_filter = ('status', 'category')
    search_fields = ('title', 'poster__username', 'doer__username')

@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ('assignment', 'user', 'bid_amount', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('assignment__title', 'user__username')

@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    list_display = ('assignment', 'user', 'status', 'created_at')
    list_filter = ('status',)
