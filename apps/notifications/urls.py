from django.urls import path
from .views import NotificationListView, NotificationReadView, NotificationReadAllView, NotificationUnreadCountView

urlpatterns = [
    path('', NotificationListView.as_view(), name='notification_list'),
    path('unread-count/', NotificationUnreadCountView.as_view(), name='notification_unread_count'),
    path('read-all/', NotificationReadAllView.as_view(), name='notification_read_all'),
    path('<int:notification_id>/read/', NotificationReadView.as_view(), name='notification_read'),
]
