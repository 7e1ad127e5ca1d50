from django.urls import path
from .api import CalendarSnapshotView

app_name = "clinic_api"

urlpatterns = [
    path("calendar/snapshot/", CalendarSnapshotView.as_view(), name="calendar-snapshot"),
]
