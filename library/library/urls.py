from django.contrib import admin
from django.urls import path, include
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

# Define Swagger schema view
schema_view = get_schema_view(
    openapi.Info(
        title="Library Circulation API",
        default_version='v1',
        description="Catalog, borrow lifecycle and request approval for a school library",
        contact=openapi.Contact(email="library@example.com"),
        license=openapi.License(name="MIT License"),
    ),
    public=True,
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('circulation.urls')),  # Include API routes
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('swagger.json', schema_view.without_ui(cache_timeout=0), name='schema-json'),
]
