from django.urls import path
from .views import PaymentReleaseView, DoerEarningsView

urlpatterns = [
    path('tasks/<int:task_id>/release/', PaymentReleaseView.as_view(), name='payment_release'),
    path('earnings/', DoerEarningsView.as_view(), name='doer_earnings'),
]
