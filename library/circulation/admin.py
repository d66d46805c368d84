from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import Book, BorrowRecord, Request, User, UserConfig


class UserConfigInline(admin.StackedInline):
    model = UserConfig
    can_delete = False
    extra = 0


@admin.register(User)
class LibraryUserAdmin(UserAdmin):
    inlines = [UserConfigInline]
    list_display = ['username', 'name', 'email', 'email_verified', 'is_staff']
    fieldsets = UserAdmin.fieldsets + (('Library', {'fields': ('name', 'email_verified')}),)


@admin.register(Book)
class BookAdmin(admin.ModelAdmin):
    list_display = ['title', 'author', 'genre', 'total_copies', 'available_copies']
    list_filter = ['genre']
    search_fields = ['title', 'author']


@admin.register(BorrowRecord)
class BorrowRecordAdmin(admin.ModelAdmin):
    list_display = ['book', 'user', 'status', 'borrow_date', 'due_date', 'return_date']
    list_filter = ['status']
    search_fields = ['book__title', 'user__username', 'user__name']
    # Status moves only through the circulation API.
    readonly_fields = ['status', 'return_date']


@admin.register(Request)
class RequestAdmin(admin.ModelAdmin):
    list_display = ['type', 'user', 'status', 'created_at', 'resolved_at']
    list_filter = ['type', 'status']
    search_fields = ['reason', 'user__username']
    readonly_fields = ['status', 'admin', 'resolved_at', 'rescinded_at']
