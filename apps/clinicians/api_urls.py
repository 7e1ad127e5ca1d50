from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .api import PractitionerViewSet

app_name = "clinicians_api"

router = DefaultRouter()
router.register(r"practitioners", PractitionerViewSet, basename="practitioner")

urlpatterns = [path("", include(router.urls))]
