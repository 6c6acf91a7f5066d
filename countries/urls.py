from django.urls import path
from . import views

app_name = 'countries'

# fixed paths must precede countries/<name>, which would swallow them
urlpatterns = [
    path('status', views.get_status, name='status'),
    path('countries/refresh', views.refresh_countries, name='refresh'),
    path('countries/image', views.get_summary_image, name='summary-image'),
    path('countries', views.list_countries, name='list'),
    path('countries/', views.list_countries),
    path('countries/<str:name>', views.country_detail, name='detail'),
]
