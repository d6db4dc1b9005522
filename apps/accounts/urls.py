from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    # Authentication
    path('register/', views.register, name='register'),
    path('login/', views.login, name='login'),
    path('logout/', views.logout, name='logout'),

    # User profile
    path('user/', views.get_current_user, name='current-user'),
    path('user/update/', views.update_profile_view, name='update-profile'),
    path('user/delete/', views.delete_account, name='delete-account'),
    path('users/<uuid:pk>/', views.UserDetailView.as_view(), name='user-detail'),
]
