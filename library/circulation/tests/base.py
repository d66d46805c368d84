from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from circulation.models import Book, BorrowRecord, UserConfig

User = get_user_model()


class LibraryFixturesMixin:
    """Shortcuts for building users, books and borrow records in tests."""

    def make_user(self, username, role=UserConfig.Role.USER, status=UserConfig.Status.APPROVED, **extra):
        user = User.objects.create_user(
            username=username,
            email=f'{username}@example.com',
            password='testpass123',
            name=username.title(),
            **extra
        )
        UserConfig.objects.create(
            user=user,
            full_name=username.title(),
            role=role,
            status=status,
            user_class=UserConfig.UserClass.TEN,
            section=UserConfig.Section.A,
            roll_no='1001',
        )
        return user

    def make_book(self, title='Test Book', total=5, available=None, genre='Fiction'):
        return Book.objects.create(
            title=title,
            author='John Doe',
            genre=genre,
            rating=4,
            total_copies=total,
            available_copies=total if available is None else available,
        )

    def make_borrowed(self, user, book, days_left=14):
        """A BORROWED record whose copy has already been taken off the shelf."""
        book.available_copies -= 1
        book.save()
        return BorrowRecord.objects.create(
            user=user,
            book=book,
            borrow_date=timezone.now() - timedelta(days=3),
            due_date=timezone.localdate() + timedelta(days=days_left),
            status=BorrowRecord.Status.BORROWED,
        )
