from django.urls import path
from .views import (
    TaskListCreateView, AvailableTaskListView, TaskDetailView, TaskStatusView,
    TaskBidView, UserBidListView, BidDetailView, BidAcceptView, BidRejectView,
    TaskSubmissionView, SubmissionReviewView
)

urlpatterns = [
    path('', TaskListCreateView.as_view(), name='task_list_create'),
    path('available/', AvailableTaskListView.as_view(), name='available_tasks'),
    path('<int:task_id>/', TaskDetailView.as_view(), name='task_detail'),
    path('<int:task_id>/status/', TaskStatusView.as_view(), name='task_status_update'),
    path('<int:task_id>/bids/', TaskBidView.as_view(), name='task_bid'),
    path('<int:task_id>/submissions/', TaskSubmissionView.as_view(), name='task_submission'),
    path('bids/', UserBidListView.as_view(), name='user_bids'),
    path('bids/<int:bid_id>/', BidDetailView.as_view(), name='bid_detail'),
    path('bids/<int:bid_id>/accept/', BidAcceptView.as_view(), name='bid_accept'),
    path('bids/<int:bid_id>/reject/', BidRejectView.as_view(), name='bid_reject'),
    path('submissions/<int:submission_id>/review/', SubmissionReviewView.as_view(), name='submission_review'),
]
