"""Tests for principals, the context identity provider and AuthorizationPolicy."""
from __future__ import annotations

import threading
from pathlib import Path

import pytest

from aumos_input_gate.approval.ledger import ApprovalLedger
from aumos_input_gate.engine.execution import ExecutionRecord
from aumos_input_gate.permissions.policy import AuthorizationPolicy
from aumos_input_gate.permissions.principal import (
    ANONYMOUS,
    SYSTEM,
    Principal,
    current_principal,
    impersonate,
)
from aumos_input_gate.permissions.provider import ContextIdentityProvider, Permission


@pytest.fixture()
def record(tmp_path: Path) -> ExecutionRecord:
    return ExecutionRecord("deploy #42", "job/deploy/42/", root_dir=tmp_path)


# ---------------------------------------------------------------------------
# Principal and impersonation
# ---------------------------------------------------------------------------


class TestPrincipal:
    def test_identities_include_groups(self) -> None:
        alice = Principal("alice", frozenset({"ops", "dev"}))
        assert alice.identities() == frozenset({"alice", "ops", "dev"})

    def test_is_system(self) -> None:
        assert SYSTEM.is_system is True
        assert Principal("alice").is_system is False
        assert Principal("SYSTEM").is_system is False

    def test_str(self) -> None:
        assert str(Principal("alice")) == "alice"


class TestImpersonate:
    def test_default_is_anonymous(self) -> None:
        assert current_principal() == ANONYMOUS

    def test_binds_for_block(self) -> None:
        with impersonate(Principal("alice")):
            assert current_principal().name == "alice"
        assert current_principal() == ANONYMOUS

    def test_nested_blocks_restore_outer(self) -> None:
        with impersonate(Principal("alice")):
            with impersonate(SYSTEM):
                assert current_principal() is SYSTEM
            assert current_principal().name == "alice"

    def test_binding_is_per_thread(self) -> None:
        seen: list[str] = []
        with impersonate(Principal("alice")):
            thread = threading.Thread(target=lambda: seen.append(current_principal().name))
            thread.start()
            thread.join()
        assert seen == ["anonymous"]


# ---------------------------------------------------------------------------
# ContextIdentityProvider
# ---------------------------------------------------------------------------


class TestContextIdentityProvider:
    def test_current_principal_reads_context(self) -> None:
        provider = ContextIdentityProvider()
        with impersonate(Principal("bob")):
            assert provider.current_principal().name == "bob"

    def test_no_grants_no_permission(self, record: ExecutionRecord) -> None:
        provider = ContextIdentityProvider()
        assert provider.has_permission(record, Permission.CANCEL, Principal("alice")) is False

    def test_user_grant(self, record: ExecutionRecord) -> None:
        provider = ContextIdentityProvider(cancel_users=["alice"])
        assert provider.has_permission(record, Permission.CANCEL, Principal("alice")) is True

    def test_group_grant(self, record: ExecutionRecord) -> None:
        provider = ContextIdentityProvider(cancel_groups=["admins"])
        admin = Principal("carol", frozenset({"admins"}))
        assert provider.has_permission(record, Permission.CANCEL, admin) is True

    def test_record_scoped_grant(self, record: ExecutionRecord, tmp_path: Path) -> None:
        provider = ContextIdentityProvider()
        provider.grant(Permission.CANCEL, "alice", record)
        other = ExecutionRecord("other", "job/other/1/", root_dir=tmp_path / "other")
        assert provider.has_permission(record, Permission.CANCEL, Principal("alice")) is True
        assert provider.has_permission(other, Permission.CANCEL, Principal("alice")) is False

    def test_revoke(self, record: ExecutionRecord) -> None:
        provider = ContextIdentityProvider(cancel_users=["alice"])
        provider.revoke(Permission.CANCEL, "alice")
        assert provider.has_permission(record, Permission.CANCEL, Principal("alice")) is False

    def test_system_holds_every_permission(self, record: ExecutionRecord) -> None:
        assert ContextIdentityProvider().has_permission(record, Permission.CANCEL, SYSTEM) is True

    def test_defaults_to_current_principal(self, record: ExecutionRecord) -> None:
        provider = ContextIdentityProvider(cancel_users=["alice"])
        with impersonate(Principal("alice")):
            assert provider.has_permission(record, Permission.CANCEL) is True


# ---------------------------------------------------------------------------
# AuthorizationPolicy
# ---------------------------------------------------------------------------


class TestAuthorizationPolicy:
    def test_open_gate_admits_everyone(self, record: ExecutionRecord) -> None:
        policy = AuthorizationPolicy(ContextIdentityProvider(), record)
        assert policy.can_vote(Principal("anyone")) is True

    def test_single_submitter_by_name(self, record: ExecutionRecord) -> None:
        policy = AuthorizationPolicy(ContextIdentityProvider(), record, submitter="alice")
        assert policy.can_vote(Principal("alice")) is True
        assert policy.can_vote(Principal("bob")) is False

    def test_single_submitter_by_group(self, record: ExecutionRecord) -> None:
        policy = AuthorizationPolicy(ContextIdentityProvider(), record, submitter="release-managers")
        assert policy.can_vote(Principal("bob", frozenset({"release-managers"}))) is True

    def test_blank_submitter_is_open(self, record: ExecutionRecord) -> None:
        policy = AuthorizationPolicy(ContextIdentityProvider(), record, submitter="  ")
        assert policy.submitter is None
        assert policy.can_vote(Principal("anyone")) is True

    def test_ledger_membership_decides(self, record: ExecutionRecord) -> None:
        ledger = ApprovalLedger(["alice", "ops"])
        policy = AuthorizationPolicy(ContextIdentityProvider(), record, "alice,ops", ledger)
        assert policy.can_vote(Principal("alice")) is True
        assert policy.can_vote(Principal("dave", frozenset({"ops"}))) is True
        assert policy.can_vote(Principal("carol")) is False

    def test_can_cancel_needs_permission(self, record: ExecutionRecord) -> None:
        policy = AuthorizationPolicy(ContextIdentityProvider(cancel_users=["admin"]), record, "alice")
        assert policy.can_cancel(Principal("admin")) is True
        assert policy.can_cancel(Principal("alice")) is False

    def test_system_can_cancel(self, record: ExecutionRecord) -> None:
        policy = AuthorizationPolicy(ContextIdentityProvider(), record, "alice")
        assert policy.can_cancel(SYSTEM) is True

    def test_user_named_system_needs_permission(self, record: ExecutionRecord) -> None:
        policy = AuthorizationPolicy(ContextIdentityProvider(), record, "alice")
        assert policy.can_cancel(Principal("SYSTEM")) is False
        assert ContextIdentityProvider().has_permission(record, Permission.CANCEL, Principal("SYSTEM")) is False

    def test_resolves_current_principal_on_every_call(self, record: ExecutionRecord) -> None:
        policy = AuthorizationPolicy(ContextIdentityProvider(), record, submitter="alice")
        with impersonate(Principal("alice")):
            assert policy.can_vote() is True
        with impersonate(Principal("bob")):
            assert policy.can_vote() is False

    def test_permission_changes_are_seen(self, record: ExecutionRecord) -> None:
        provider = ContextIdentityProvider()
        policy = AuthorizationPolicy(provider, record, submitter="alice")
        assert policy.can_cancel(Principal("carol")) is False
        provider.grant(Permission.CANCEL, "carol")
        assert policy.can_cancel(Principal("carol")) is True
