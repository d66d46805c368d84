from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from .views import (
    ApproveRecordView, BookCopiesView, BookCreateView, BookDetailView, BookListView, BookManageView,
    BorrowRecordDetailView, BorrowRecordListView, BorrowView, DashboardView, GenreListView, RegisterView,
    RejectRecordView, RequestDetailView, RequestListCreateView, RescindRequestView, RespondToRequestView,
    ReturnRecordView, SetupView, UserListView, UserRoleView, UserStatusView,
)

urlpatterns = [
    path('register/', RegisterView.as_view(), name='register'),
    path('login/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('setup/', SetupView.as_view(), name='setup'),
    path('books/', BookListView.as_view(), name='book_list'),
    path('books/create/', BookCreateView.as_view(), name='book_create'),
    path('books/genres/', GenreListView.as_view(), name='book_genres'),
    path('books/<uuid:pk>/', BookDetailView.as_view(), name='book_detail'),
    path('books/<uuid:pk>/manage/', BookManageView.as_view(), name='book_manage'),
    path('books/<uuid:pk>/copies/', BookCopiesView.as_view(), name='book_copies'),
    path('books/<uuid:pk>/borrow/', BorrowView.as_view(), name='borrow'),
    path('records/', BorrowRecordListView.as_view(), name='record_list'),
    path('records/<uuid:pk>/', BorrowRecordDetailView.as_view(), name='record_detail'),
    path('records/<uuid:pk>/approve/', ApproveRecordView.as_view(), name='record_approve'),
    path('records/<uuid:pk>/reject/', RejectRecordView.as_view(), name='record_reject'),
    path('records/<uuid:pk>/return/', ReturnRecordView.as_view(), name='record_return'),
    path('requests/', RequestListCreateView.as_view(), name='request_list'),
    path('requests/<uuid:pk>/', RequestDetailView.as_view(), name='request_detail'),
    path('requests/<uuid:pk>/rescind/', RescindRequestView.as_view(), name='request_rescind'),
    path('requests/<uuid:pk>/respond/', RespondToRequestView.as_view(), name='request_respond'),
    path('users/', UserListView.as_view(), name='user_list'),
    path('users/<int:pk>/status/', UserStatusView.as_view(), name='user_status'),
    path('users/<int:pk>/role/', UserRoleView.as_view(), name='user_role'),
    path('dashboard/', DashboardView.as_view(), name='dashboard'),
]
