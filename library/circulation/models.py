import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    name = models.CharField(max_length=255, blank=True)
    email_verified = models.BooleanField(default=False)

    class Meta:
        db_table = 'user'

    def __str__(self):
        return self.name or self.username


class UserConfig(models.Model):
    """Library profile of a user: role, approval status and class identity."""

    class Role(models.TextChoices):
        USER = 'USER', 'User'
        ADMIN = 'ADMIN', 'Admin'
        MODERATOR = 'MODERATOR', 'Moderator'
        GUEST = 'GUEST', 'Guest'

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        APPROVED = 'APPROVED', 'Approved'
        REJECTED = 'REJECTED', 'Rejected'
        SUSPENDED = 'SUSPENDED', 'Suspended'

    class UserClass(models.TextChoices):
        SIX = '6', '6'
        SEVEN = '7', '7'
        EIGHT = '8', '8'
        NINE = '9', '9'
        TEN = '10', '10'
        ELEVEN = '11', '11'
        TWELVE = '12', '12'
        TEACHER = 'Teacher', 'Teacher'

    class Section(models.TextChoices):
        A = 'A', 'A'
        B = 'B', 'B'
        C = 'C', 'C'
        D = 'D', 'D'
        NONE = 'N/A', 'N/A'

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='config')
    full_name = models.CharField(max_length=255)
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.USER)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    user_class = models.CharField(max_length=7, choices=UserClass.choices)
    section = models.CharField(max_length=3, choices=Section.choices)
    roll_no = models.CharField(max_length=10)
    last_active_at = models.DateField(default=timezone.localdate)
    suspended_until = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'config'

    def __str__(self):
        return f"{self.full_name} ({self.role}, {self.status})"


class Book(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    author = models.CharField(max_length=255)
    genre = models.CharField(max_length=100)
    rating = models.PositiveSmallIntegerField(default=0)
    cover_url = models.URLField(blank=True)
    cover_color = models.CharField(max_length=7, blank=True)
    description = models.TextField(blank=True)
    summary = models.TextField(blank=True)
    video_url = models.URLField(blank=True)
    total_copies = models.PositiveIntegerField(default=1)
    available_copies = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'books'
        ordering = ['title']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_copies__lte=models.F('total_copies')),
                name='available_within_total',
            ),
        ]

    def __str__(self):
        return self.title


class BorrowRecord(models.Model):

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        BORROWED = 'BORROWED', 'Borrowed'
        RETURNED = 'RETURNED', 'Returned'

    ACTIVE_STATUSES = (Status.PENDING, Status.BORROWED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='borrow_records')
    book = models.ForeignKey(Book, on_delete=models.PROTECT, related_name='borrow_records')
    borrow_date = models.DateTimeField(default=timezone.now)
    due_date = models.DateField()
    return_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'borrow_records'
        ordering = ['-borrow_date']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'book'],
                condition=models.Q(status__in=['PENDING', 'BORROWED']),
                name='one_active_borrow_per_user_book',
            ),
        ]

    def __str__(self):
        return f"{self.user} - {self.book.title} ({self.status})"

    def is_overdue(self, today=None):
        today = today or timezone.localdate()
        return self.status == self.Status.BORROWED and self.due_date < today


class Request(models.Model):
    """A follow-up action a borrower asks the library staff to perform."""

    class Type(models.TextChoices):
        EXTEND_BORROW = 'EXTEND_BORROW', 'Extend borrow'
        REPORT_LOST = 'REPORT_LOST', 'Report lost'
        REPORT_DAMAGE = 'REPORT_DAMAGE', 'Report damage'
        EARLY_RETURN = 'EARLY_RETURN', 'Early return'
        CHANGE_DUE_DATE = 'CHANGE_DUE_DATE', 'Change due date'
        OTHER = 'OTHER', 'Other'

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        APPROVED = 'APPROVED', 'Approved'
        REJECTED = 'REJECTED', 'Rejected'
        RESCINDED = 'RESCINDED', 'Rescinded'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='requests')
    borrow_record = models.ForeignKey(BorrowRecord, on_delete=models.CASCADE, related_name='requests')
    type = models.CharField(max_length=20, choices=Type.choices)
    reason = models.CharField(max_length=500)
    description = models.TextField(max_length=1000, blank=True, null=True)
    requested_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    admin_response = models.TextField(blank=True, null=True)
    admin = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='resolved_requests'
    )
    rescinded_at = models.DateTimeField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'requests'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['borrow_record'],
                condition=models.Q(status='PENDING'),
                name='one_pending_request_per_record',
            ),
        ]

    def __str__(self):
        return f"{self.get_type_display()} by {self.user} ({self.status})"
