from django.urls import path

from .views import NumberingSettingsView

app_name = "numbering"

urlpatterns = [
    path("<str:document_type>/", NumberingSettingsView.as_view(), name="numbering-settings"),
]
