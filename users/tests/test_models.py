"""
Users — Model Tests

@file users/tests/test_models.py
"""

import pytest

from tests.factories import NoAddressUserFactory, UserFactory
from users.models import User


@pytest.mark.django_db
class TestUserModel:
    def test_create_user_normalizes_email(self):
        user = User.objects.create_user(email='Asha@Example.COM', password='Test2026!!')
        assert user.email == 'Asha@example.com'
        assert user.check_password('Test2026!!')
        assert user.is_staff is False

    def test_create_user_requires_email(self):
        with pytest.raises(ValueError):
            User.objects.create_user(email='', password='Test2026!!')

    def test_superuser_creation(self):
        user = User.objects.create_superuser(email='root@medshare.test', password='Super2026!!')
        assert user.is_staff is True
        assert user.is_superuser is True

    def test_full_name_falls_back_to_email(self):
        user = UserFactory(first_name='', last_name='', email='anon@medshare.test')
        assert user.get_full_name() == 'anon@medshare.test'
        assert str(user) == 'anon@medshare.test'

    def test_full_address_skips_blank_parts(self):
        user = UserFactory(
            address_line1='12 MG Road', city='Bengaluru', state='Karnataka',
            pincode='', country='India',
        )
        assert user.full_address == '12 MG Road, Bengaluru, Karnataka, India'
        assert user.has_usable_address is True

    def test_no_address(self):
        user = NoAddressUserFactory()
        assert user.full_address == ''
        assert user.has_usable_address is False

    def test_active_manager(self):
        UserFactory(is_active=False)
        active = UserFactory()
        assert list(User.objects.active()) == [active]
