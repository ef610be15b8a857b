"""
URL configuration for the approval workflow API
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.register(r'contracts', views.ContractWorkflowViewSet, basename='contract')
router.register(r'approvals', views.ApprovalViewSet, basename='approval')

feature_flag_list = views.FeatureFlagViewSet.as_view({'get': 'list'})
feature_flag_detail = views.FeatureFlagViewSet.as_view({
    'post': 'create_or_update',
    'put': 'create_or_update',
})

urlpatterns = [
    path('health/', views.HealthCheckView.as_view(), name='health'),
    path('feature-flags/', feature_flag_list, name='feature-flag-list'),
    path('feature-flags/<str:code>/', feature_flag_detail, name='feature-flag-detail'),
    path('', include(router.urls)),
]
