# events/urls_teams.py - Separate URL configuration for teams API

from rest_framework.routers import DefaultRouter
from .views.teams import EventTeamViewSet

router = DefaultRouter()
router.register(r'', EventTeamViewSet, basename='teams')

urlpatterns = router.urls
