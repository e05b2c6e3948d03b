from django.contrib import admin
from .models import User, Review

@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'name', 'email', 'role', 'rating', 'account_balance', 'is_active')
    list_filter = ('role', 'is_active', 'is_superuser')
    search_fields = ('username', 'name', 'email')

@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('assignment', 'reviewer', 'receiver', 'rating', 'created_at')
    search_fields = ('reviewer__username', 'receiver__username', 'assignment__title')
    list_filter = ('rating',)
