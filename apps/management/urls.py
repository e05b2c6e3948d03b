from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'users', views.ManagementUserViewSet, basename='management-users')
router.register(r'disputes', views.DisputeManagementViewSet, basename='management-disputes')
router.register(r'management-logs', views.ManagementLogViewSet, basename='management-logs')

urlpatterns = [
    path('', include(router.urls)),
    path('stats/', views.AdminStatsView.as_view(), name='admin_stats'),
]
