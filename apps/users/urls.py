from django.urls import path
from .views import (
    AuthRegisterView, AuthLoginView, UserProfileView, SwitchRoleView,
    UserRatingStatsView, UserReviewsView, ReviewDetailView
)

urlpatterns = [
    # Authentication
    path('auth/register/', AuthRegisterView.as_view(), name='auth_register'),
    path('auth/login/', AuthLoginView.as_view(), name='auth_login'),

    # Profile Management
    path('profile/', UserProfileView.as_view(), name='user_profile'),
    path('profile/role/', SwitchRoleView.as_view(), name='user_switch_role'),

    # Rating Statistics
    path('ratings/', UserRatingStatsView.as_view(), name='user_ratings'),
    path('<int:user_id>/ratings/', UserRatingStatsView.as_view(), name='user_ratings_by_id'),

    # Reviews
    path('reviews/', UserReviewsView.as_view(), name='user_reviews'),
    path('reviews/<int:review_id>/', ReviewDetailView.as_view(), name='review_detail'),
    path('<int:user_id>/reviews/', UserReviewsView.as_view(), name='user_reviews_by_id'),
]
