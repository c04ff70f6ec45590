from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.routers import DefaultRouter

from operations.api import views

router = DefaultRouter()
router.register('users', views.UserViewSet, basename='user')
router.register('client', views.ClientViewSet, basename='client')
router.register('project', views.ProjectViewSet, basename='project')
router.register('estimation', views.EstimationViewSet, basename='estimation')
router.register('quotation', views.QuotationViewSet, basename='quotation')
router.register('lpo', views.LpoViewSet, basename='lpo')
router.register('work-completion', views.WorkCompletionViewSet, basename='work-completion')
router.register('comment', views.CommentViewSet, basename='comment')

urlpatterns = [
    path('auth/token/', views.CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', views.CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', views.MeView.as_view(), name='me'),
    path('schema/', SpectacularAPIView.as_view(), name='schema'),
    path('docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('', include(router.urls)),
]
