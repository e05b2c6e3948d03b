from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Avg
from core.constants import USER_ROLE_CHOICES


class User(AbstractUser):
    name = models.CharField(max_length=150, blank=True)
    image = models.URLField(max_length=500, blank=True, null=True)
    role = models.CharField(max_length=10, choices=USER_ROLE_CHOICES, default='DOER')
    rating = models.FloatField(default=0.0)
    bio = models.TextField(blank=True, null=True)
    account_balance = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    @property
    def is_poster(self):
        return self.role == 'POSTER'

    @property
    def is_doer(self):
        return self.role == 'DOER'

    @property
    def is_admin_role(self):
        return self.role == 'ADMIN' or self.is_superuser

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.username

    def refresh_rating(self):
        """Recompute the average rating from received reviews."""
        average = self.reviews_received.aggregate(avg=Avg('rating'))['avg']
        self.rating = round(average, 1) if average is not None else 0.0
        self.save(update_fields=['rating'])
        return self.rating

    def get_rating_stats(self):
        """Get rating statistics from reviews received as poster or doer"""
        stats = {
            'average_rating': 0.0,
            'total_ratings': 0,
            'rating_breakdown': {
                '5_star': 0,
                '4_star': 0,
                '3_star': 0,
                '2_star': 0,
                '1_star': 0
            }
        }

        all_ratings = list(self.reviews_received.values_list('rating', flat=True))
        if all_ratings:
            stats['total_ratings'] = len(all_ratings)
            stats['average_rating'] = round(sum(all_ratings) / len(all_ratings), 1)

            for rating in all_ratings:
                stats['rating_breakdown'][f'{rating}_star'] += 1

            # Convert to percentages
            for key in stats['rating_breakdown']:
                stats['rating_breakdown'][key] = round(
                    (stats['rating_breakdown'][key] / stats['total_ratings']) * 100, 1
                )

        return stats

    def __str__(self):
        return f"{self.display_name} ({self.role})"


class Review(models.Model):
    assignment = models.ForeignKey('tasks.Assignment', on_delete=models.CASCADE, related_name='reviews')
    reviewer = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reviews_given')
    receiver = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reviews_received')
    rating = models.IntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['assignment', 'reviewer', 'receiver'],
                name='unique_review_per_assignment_pair',
            ),
        ]

    def __str__(self):
        return f"Review for {self.receiver.username} on {self.assignment.title} ({self.rating}/5)"
