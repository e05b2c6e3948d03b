from django.urls import path
from .views import (
    TaskMessagesView, UnreadMessageCountView, TaskUnreadMessageCountView, SupportChatView, SupportChatInboxView,
    SupportChatDetailView, SupportChatMessageView, SupportChatCloseView, SupportMessagesReadView, SupportUnreadCountView,
)

urlpatterns = [
    path('unread/', UnreadMessageCountView.as_view(), name='unread_message_count'),
    path('tasks/<int:task_id>/', TaskMessagesView.as_view(), name='task_messages'),
    path('tasks/<int:task_id>/unread/', TaskUnreadMessageCountView.as_view(), name='task_unread_message_count'),
    path('support/', SupportChatView.as_view(), name='support_chat'),
    path('support/all/', SupportChatInboxView.as_view(), name='support_chat_inbox'),
    path('support/read/', SupportMessagesReadView.as_view(), name='support_messages_read'),
    path('support/unread/', SupportUnreadCountView.as_view(), name='support_unread_count'),
    path('support/<int:session_id>/', SupportChatDetailView.as_view(), name='support_chat_detail'),
    path('support/<int:session_id>/messages/', SupportChatMessageView.as_view(), name='support_chat_messages'),
    path('support/<int:session_id>/close/', SupportChatCloseView.as_view(), name='support_chat_close'),
]
