"""
Core — Model Tests

Tests for AuditLog and the audit service.

@file core/tests/test_models.py
"""

import pytest

from core.models import AuditLog
from core.services import AuditService
from tests.factories import AuditLogFactory, ItemFactory, UserFactory
from users.context import as_actor


@pytest.mark.django_db
class TestAuditLog:
    def test_create_audit_log(self):
        user = UserFactory()
        log = AuditService.log(
            actor=user,
            action=AuditLog.ActionChoices.CREATE,
            model_name='TestModel',
            object_id='test-123',
            new_values={'key': 'value'},
        )
        assert log.pk is not None
        assert log.action == 'CREATE'
        assert log.model_name == 'TestModel'
        assert log.actor == user

    def test_actor_context_resolves_to_user(self):
        user = UserFactory()
        log = AuditService.log(
            actor=as_actor(user), action=AuditLog.ActionChoices.UPDATE,
            model_name='Item', object_id='1',
        )
        assert log.actor == user

    def test_updates_are_refused(self):
        log = AuditLogFactory()
        log.model_name = 'Tampered'
        with pytest.raises(NotImplementedError):
            log.save()
        log.refresh_from_db()
        assert log.model_name == 'Item'

    def test_deletes_are_refused(self):
        log = AuditLogFactory()
        with pytest.raises(NotImplementedError):
            log.delete()
        assert AuditLog.objects.filter(pk=log.pk).exists()

    def test_status_change_shape(self):
        item = ItemFactory()
        log = AuditService.log_status_change(
            actor=UserFactory(), instance=item, old_status='a', new_status='b', reason='test',
        )
        assert log.action == AuditLog.ActionChoices.STATUS_CHANGE
        assert log.model_name == 'Item'
        assert log.old_values == {'status': 'a'}
        assert log.new_values == {'status': 'b', 'reason': 'test'}

    def test_snapshot_is_json_friendly(self):
        user = UserFactory()
        snapshot = AuditService.snapshot(user, fields=['email', 'role', 'unit'])
        assert snapshot['email'] == user.email
        assert snapshot['unit'] == str(user.unit_id)

    def test_user_create_triggers_audit(self):
        """User creation via signal should produce an audit log."""
        before = AuditLog.objects.count()
        UserFactory()
        after = AuditLog.objects.count()
        assert after > before

    def test_password_never_audited(self):
        user = UserFactory()
        for log in AuditLog.objects.filter(model_name='User', object_id=str(user.pk)):
            assert 'password' not in (log.new_values or {})
