from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone
import re
import uuid


_NON_DIGITS = re.compile(r'\D')


def normalize_phone_number(value):
    """Strip everything but digits so '555-1234' and '(555) 1234' match."""
    if not value:
        return ''
    return _NON_DIGITS.sub('', value)


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')

        email = self.normalize_email(email)
        extra_fields['phone_number'] = normalize_phone_number(
            extra_fields.get('phone_number')
        )
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """Custom user model with email authentication.

    ``is_staff`` doubles as the counter-staff flag: staff members can use the
    verification console to redeem SMS credit shares.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=255, db_index=True)
    display_name = models.CharField(max_length=100, blank=True)

    # Digits only, used for "send credits to a phone number" lookups
    phone_number = models.CharField(max_length=20, blank=True, db_index=True)

    # Permissions
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    last_login = models.DateTimeField(null=True, blank=True)

    # GDPR compliance
    gdpr_deleted_at = models.DateTimeField(null=True, blank=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['email'], name='users_email_idx'),
            models.Index(fields=['created_at'], name='users_created_idx'),
        ]

    def __str__(self):
        return self.email

    def get_display_name(self):
        """Return display name or email prefix."""
        return self.display_name or self.email.split('@')[0]

    def anonymize(self):
        """GDPR-compliant anonymization."""
        self.email = f"deleted_{self.id}@anonymized.local"
        self.display_name = "Deleted User"
        self.phone_number = ''
        self.is_active = False
        self.gdpr_deleted_at = timezone.now()
        self.set_unusable_password()
        self.save()
