from rest_framework import serializers
from django.contrib.auth import get_user_model
from .models import UserConfig, Book, BorrowRecord, Request

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'name', 'email', 'email_verified', 'password']
        extra_kwargs = {
            'password': {'write_only': True},
            'email_verified': {'read_only': True},
        }

    def create(self, validated_data):
        user = User.objects.create_user(**validated_data)
        return user


class UserConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserConfig
        fields = [
            'full_name', 'role', 'status', 'user_class', 'section', 'roll_no',
            'last_active_at', 'suspended_until', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class SetupSerializer(serializers.Serializer):
    user_class = serializers.ChoiceField(choices=UserConfig.UserClass.choices)
    section = serializers.ChoiceField(choices=UserConfig.Section.choices)
    roll_no = serializers.CharField(min_length=4, max_length=6)


class AdminUserSerializer(serializers.ModelSerializer):
    config = UserConfigSerializer(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'name', 'email', 'email_verified', 'date_joined', 'config']


class UserStatusSerializer(serializers.Serializer):
    ACTIONS = ('approve', 'reject', 'suspend', 'reactivate')

    action = serializers.ChoiceField(choices=ACTIONS)
    suspended_until = serializers.DateTimeField(required=False, allow_null=True)


class UserRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=UserConfig.Role.choices)


class BookSerializer(serializers.ModelSerializer):
    class Meta:
        model = Book
        fields = [
            'id', 'title', 'author', 'genre', 'rating', 'cover_url', 'cover_color',
            'description', 'summary', 'video_url', 'total_copies', 'available_copies',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_rating(self, value):
        if value > 5:
            raise serializers.ValidationError("Rating must be between 0 and 5.")
        return value

    def validate(self, data):
        """
        Ensure total_copies and available_copies are non-negative and consistent.
        """
        total_copies = data.get('total_copies', getattr(self.instance, 'total_copies', 0))
        available_copies = data.get('available_copies', getattr(self.instance, 'available_copies', total_copies))
        if total_copies < 0 or available_copies < 0:
            raise serializers.ValidationError("Total and available copies cannot be negative.")
        if available_copies > total_copies:
            raise serializers.ValidationError("Available copies cannot exceed total copies.")
        return data


class BookCopiesSerializer(serializers.Serializer):
    total_copies = serializers.IntegerField(min_value=0)
    available_copies = serializers.IntegerField(min_value=0)


class BorrowRecordSerializer(serializers.ModelSerializer):
    user = serializers.StringRelatedField(read_only=True)
    book_title = serializers.CharField(source='book.title', read_only=True)
    book_author = serializers.CharField(source='book.author', read_only=True)
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = BorrowRecord
        fields = [
            'id', 'user', 'user_id', 'book_id', 'book_title', 'book_author',
            'borrow_date', 'due_date', 'return_date', 'status', 'is_overdue',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_is_overdue(self, obj):
        return obj.is_overdue()


class BorrowSerializer(serializers.Serializer):
    confirm = serializers.BooleanField(default=False)


class RequestSerializer(serializers.ModelSerializer):
    user = serializers.StringRelatedField(read_only=True)
    borrow_record = BorrowRecordSerializer(read_only=True)
    admin = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = Request
        fields = [
            'id', 'user', 'user_id', 'borrow_record', 'type', 'reason', 'description',
            'requested_date', 'status', 'admin_response', 'admin', 'rescinded_at',
            'resolved_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class CreateRequestSerializer(serializers.Serializer):
    borrow_record_id = serializers.UUIDField()
    type = serializers.ChoiceField(choices=Request.Type.choices)
    reason = serializers.CharField(min_length=1, max_length=500)
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    requested_date = serializers.DateField(required=False, allow_null=True)


class ActionDataSerializer(serializers.Serializer):
    new_due_date = serializers.DateField(required=False)


class AdminResponseSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[Request.Status.APPROVED, Request.Status.REJECTED])
    admin_response = serializers.CharField(min_length=1, max_length=500)
    action_data = ActionDataSerializer(required=False)
