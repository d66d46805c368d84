import django_filters
from django.contrib.auth import get_user_model

from .models import Book, BorrowRecord, Request, UserConfig

User = get_user_model()


class BookFilter(django_filters.FilterSet):
    genre = django_filters.CharFilter(lookup_expr='iexact')
    available = django_filters.BooleanFilter(method='filter_available')

    class Meta:
        model = Book
        fields = ['genre', 'author']

    def filter_available(self, queryset, name, value):
        if value:
            return queryset.filter(available_copies__gt=0)
        return queryset.filter(available_copies=0)


class BorrowRecordFilter(django_filters.FilterSet):
    book = django_filters.UUIDFilter(field_name='book_id')
    user = django_filters.NumberFilter(field_name='user_id')
    due_before = django_filters.DateFilter(field_name='due_date', lookup_expr='lt')

    class Meta:
        model = BorrowRecord
        fields = ['status', 'book', 'user']


class RequestFilter(django_filters.FilterSet):
    user = django_filters.NumberFilter(field_name='user_id')

    class Meta:
        model = Request
        fields = ['status', 'type', 'user']


class UserFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(field_name='config__status', choices=UserConfig.Status.choices)
    role = django_filters.ChoiceFilter(field_name='config__role', choices=UserConfig.Role.choices)
    user_class = django_filters.ChoiceFilter(field_name='config__user_class', choices=UserConfig.UserClass.choices)

    class Meta:
        model = User
        fields = ['status', 'role', 'user_class']
