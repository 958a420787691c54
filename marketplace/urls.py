from django.urls import path

from .views import ConnectionListCreateView, ConnectionSyncView

app_name = "marketplace"

urlpatterns = [
    path("connections/", ConnectionListCreateView.as_view(), name="connection-list"),
    path("connections/<int:pk>/sync/", ConnectionSyncView.as_view(), name="connection-sync"),
]
