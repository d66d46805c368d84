from django.contrib.auth import get_user_model
from django_filters.rest_framework import DjangoFilterBackend
from drf_yasg.utils import swagger_auto_schema
from rest_framework import filters, generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import accounts, borrowing, catalog, request_workflow
from .filters import BookFilter, BorrowRecordFilter, RequestFilter, UserFilter
from .models import Book, BorrowRecord, Request, UserConfig
from .permissions import IsLibraryAdmin, IsLibraryStaff, IsOwnerOrStaff, is_library_staff
from .serializers import (
    AdminResponseSerializer,
    AdminUserSerializer,
    BookCopiesSerializer,
    BookSerializer,
    BorrowRecordSerializer,
    BorrowSerializer,
    CreateRequestSerializer,
    RequestSerializer,
    SetupSerializer,
    UserConfigSerializer,
    UserRoleSerializer,
    UserSerializer,
    UserStatusSerializer,
)

User = get_user_model()

RESULT_SERIALIZERS = {
    'book': BookSerializer,
    'borrow_record': BorrowRecordSerializer,
    'request': RequestSerializer,
    'config': UserConfigSerializer,
}


def result_response(result):
    body = {'success': result.success, 'message': result.message}
    if result.error:
        body['error'] = result.error
    if result.requires_confirmation:
        body['requires_confirmation'] = True
    for key, value in result.data.items():
        serializer_class = RESULT_SERIALIZERS.get(key)
        body[key] = serializer_class(value).data if serializer_class else value
    return Response(body, status=result.status_code)


class RegisterView(generics.CreateAPIView):
    queryset = User.objects.all()
    serializer_class = UserSerializer
    permission_classes = [AllowAny]


class SetupView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        config = UserConfig.objects.filter(user=request.user).first()
        if config is None:
            return Response(
                {'success': False, 'message': "User configuration not found", 'error': 'not_found'},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(UserConfigSerializer(config).data)

    @swagger_auto_schema(request_body=SetupSerializer)
    def post(self, request):
        serializer = SetupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return result_response(accounts.setup_user(request.user, **serializer.validated_data))


class BookListView(generics.ListAPIView):
    queryset = Book.objects.all()
    serializer_class = BookSerializer
    permission_classes = [AllowAny]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = BookFilter
    search_fields = ['title', 'author', 'genre', 'description']
    ordering_fields = ['title', 'author', 'created_at', 'available_copies', 'rating']


class BookDetailView(generics.RetrieveAPIView):
    queryset = Book.objects.all()
    serializer_class = BookSerializer
    permission_classes = [AllowAny]


class GenreListView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({'genres': catalog.get_genres()})


class BookCreateView(APIView):
    permission_classes = [IsAuthenticated, IsLibraryAdmin]

    @swagger_auto_schema(request_body=BookSerializer)
    def post(self, request):
        serializer = BookSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return result_response(catalog.create_book(request.user, serializer.validated_data))


class BookManageView(APIView):
    permission_classes = [IsAuthenticated, IsLibraryAdmin]

    def _update(self, request, pk, partial):
        instance = Book.objects.filter(pk=pk).first()
        serializer = BookSerializer(instance, data=request.data, partial=partial or instance is None)
        serializer.is_valid(raise_exception=True)
        return result_response(catalog.update_book(request.user, pk, serializer.validated_data))

    @swagger_auto_schema(request_body=BookSerializer)
    def put(self, request, pk):
        return self._update(request, pk, partial=False)

    @swagger_auto_schema(request_body=BookSerializer)
    def patch(self, request, pk):
        return self._update(request, pk, partial=True)

    def delete(self, request, pk):
        return result_response(catalog.delete_book(request.user, pk))


class BookCopiesView(APIView):
    permission_classes = [IsAuthenticated, IsLibraryStaff]

    @swagger_auto_schema(request_body=BookCopiesSerializer)
    def post(self, request, pk):
        serializer = BookCopiesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return result_response(catalog.update_book_copies(request.user, pk, **serializer.validated_data))


class BorrowView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(request_body=BorrowSerializer)
    def post(self, request, pk):
        serializer = BorrowSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = borrowing.request_borrow(
            request.user, pk, confirm_reborrow=serializer.validated_data['confirm']
        )
        return result_response(result)


class BorrowRecordListView(generics.ListAPIView):
    serializer_class = BorrowRecordSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = BorrowRecordFilter
    search_fields = ['book__title', 'book__author', 'user__name', 'user__config__full_name', 'user__config__roll_no']
    ordering_fields = ['borrow_date', 'due_date', 'return_date']

    def get_queryset(self):
        queryset = BorrowRecord.objects.select_related('book', 'user')
        if is_library_staff(self.request.user):
            return queryset
        return queryset.filter(user=self.request.user)


class BorrowRecordDetailView(generics.RetrieveAPIView):
    queryset = BorrowRecord.objects.select_related('book', 'user')
    serializer_class = BorrowRecordSerializer
    permission_classes = [IsAuthenticated, IsOwnerOrStaff]


class RecordActionView(APIView):
    permission_classes = [IsAuthenticated, IsLibraryStaff]
    operation = None

    def post(self, request, pk):
        return result_response(self.operation(pk, request.user))


class ApproveRecordView(RecordActionView):
    operation = staticmethod(borrowing.approve_borrow)


class RejectRecordView(RecordActionView):
    operation = staticmethod(borrowing.reject_borrow)


class ReturnRecordView(RecordActionView):
    operation = staticmethod(borrowing.return_borrow)


class RequestListCreateView(generics.ListAPIView):
    serializer_class = RequestSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = RequestFilter
    search_fields = ['reason', 'borrow_record__book__title', 'user__name']
    ordering_fields = ['created_at', 'updated_at', 'type', 'status']

    def get_queryset(self):
        queryset = Request.objects.select_related('user', 'admin', 'borrow_record', 'borrow_record__book')
        if is_library_staff(self.request.user):
            return queryset
        return queryset.filter(user=self.request.user)

    @swagger_auto_schema(request_body=CreateRequestSerializer)
    def post(self, request):
        serializer = CreateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = request_workflow.create_request(
            request.user,
            data['borrow_record_id'],
            data['type'],
            data['reason'],
            description=data.get('description'),
            requested_date=data.get('requested_date'),
        )
        return result_response(result)


class RequestDetailView(generics.RetrieveAPIView):
    queryset = Request.objects.select_related('user', 'admin', 'borrow_record', 'borrow_record__book')
    serializer_class = RequestSerializer
    permission_classes = [IsAuthenticated, IsOwnerOrStaff]


class RescindRequestView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        return result_response(request_workflow.rescind_request(pk, request.user))


class RespondToRequestView(APIView):
    permission_classes = [IsAuthenticated, IsLibraryStaff]

    @swagger_auto_schema(request_body=AdminResponseSerializer)
    def post(self, request, pk):
        serializer = AdminResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = request_workflow.respond_to_request(
            pk,
            data['status'],
            data['admin_response'],
            request.user,
            action_data=data.get('action_data'),
        )
        return result_response(result)


class UserListView(generics.ListAPIView):
    queryset = User.objects.select_related('config').order_by('-date_joined')
    serializer_class = AdminUserSerializer
    permission_classes = [IsAuthenticated, IsLibraryAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_class = UserFilter
    search_fields = ['name', 'email', 'config__full_name', 'config__roll_no']


class UserStatusView(APIView):
    permission_classes = [IsAuthenticated, IsLibraryAdmin]

    @swagger_auto_schema(request_body=UserStatusSerializer)
    def post(self, request, pk):
        serializer = UserStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        action = serializer.validated_data['action']
        if action == 'approve':
            result = accounts.approve_user(request.user, pk)
        elif action == 'reject':
            result = accounts.reject_user(request.user, pk)
        elif action == 'suspend':
            result = accounts.suspend_user(
                request.user, pk, until=serializer.validated_data.get('suspended_until')
            )
        else:
            result = accounts.reactivate_user(request.user, pk)
        return result_response(result)


class UserRoleView(APIView):
    permission_classes = [IsAuthenticated, IsLibraryAdmin]

    @swagger_auto_schema(request_body=UserRoleSerializer)
    def post(self, request, pk):
        serializer = UserRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return result_response(accounts.change_user_role(request.user, pk, serializer.validated_data['role']))


class DashboardView(APIView):
    permission_classes = [IsAuthenticated, IsLibraryAdmin]

    def get(self, request):
        return Response({**catalog.get_dashboard_stats(), 'users': accounts.get_user_stats()})
