from django.urls import path
from .views import (
    DisputeListCreateView, DisputeDetailView, DisputeResponseView,
    DisputeFollowupView, TaskDisputeStatusView
)

urlpatterns = [
    path('', DisputeListCreateView.as_view(), name='dispute_list_create'),
    path('<int:dispute_id>/', DisputeDetailView.as_view(), name='dispute_detail'),
    path('<int:dispute_id>/response/', DisputeResponseView.as_view(), name='dispute_response'),
    path('<int:dispute_id>/followups/', DisputeFollowupView.as_view(), name='dispute_followup'),
    path('tasks/<int:task_id>/status/', TaskDisputeStatusView.as_view(), name='task_dispute_status'),
]
