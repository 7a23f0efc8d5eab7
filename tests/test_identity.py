"""Tests for the custom-claims gateway."""

import pytest

from churchdir import identity
from churchdir.exceptions import NotFoundError, ValidationError
from churchdir.models import ChurchRole, SystemRole, UserClaims


# Permission calculation

@pytest.mark.parametrize('system_role, church_roles, expected', [
    (SystemRole.USER, {}, ['read:public']),
    (SystemRole.USER, {'c1': ChurchRole.VISITOR}, ['read:public']),
    (SystemRole.USER, {'c1': ChurchRole.MEMBER}, ['read:public', 'read:church']),
    (SystemRole.USER, {'c1': ChurchRole.LEADER},
     ['read:public', 'read:church', 'write:church']),
    (SystemRole.USER, {'c1': ChurchRole.PASTOR},
     ['read:public', 'read:church', 'write:church', 'delete:church', 'admin:church']),
    (SystemRole.SYSTEM_ADMIN, {},
     ['read:all', 'write:all', 'delete:all', 'admin:all']),
])
def test_calculate_permissions(system_role, church_roles, expected):
    assert identity.calculate_permissions(system_role, church_roles) == expected


def test_calculate_permissions_has_no_duplicates():
    """Several churches granting the same permission list it once."""
    permissions = identity.calculate_permissions(
        SystemRole.USER,
        {'c1': ChurchRole.STAFF, 'c2': ChurchRole.LEADER, 'c3': ChurchRole.MEMBER},
    )

    assert permissions == ['read:public', 'read:church', 'write:church']


def test_parse_church_role_rejects_unknown():
    with pytest.raises(ValidationError):
        identity.parse_church_role('bishop')


# Claims writes

def test_set_church_role_recalculates_permissions(fake_auth):
    fake_auth.add_user('u1', {'systemRole': 'user', 'churchRoles': {}, 'permissions': ['read:public']})

    claims = identity.set_church_role('u1', 'c1', 'member')

    assert claims.church_roles == {'c1': ChurchRole.MEMBER}
    stored = fake_auth.claims['u1']
    assert stored['churchRoles'] == {'c1': 'member'}
    assert stored['permissions'] == ['read:public', 'read:church']
    assert 'updatedAt' in stored


def test_set_church_role_keeps_unrelated_claims(fake_auth):
    """Claims set by other tooling survive a role change."""
    fake_auth.add_user('u1', {'systemRole': 'user', 'churchRoles': {'c2': 'pastor'}, 'betaTester': True})

    identity.set_church_role('u1', 'c1', ChurchRole.LEADER)

    stored = fake_auth.claims['u1']
    assert stored['betaTester'] is True
    assert stored['churchRoles'] == {'c2': 'pastor', 'c1': 'leader'}


def test_remove_church_role(fake_auth):
    fake_auth.add_user('u1', {'systemRole': 'user', 'churchRoles': {'c1': 'member', 'c2': 'leader'}})

    claims = identity.remove_church_role('u1', 'c1')

    assert claims.church_roles == {'c2': ChurchRole.LEADER}
    assert fake_auth.claims['u1']['permissions'] == ['read:public', 'read:church', 'write:church']


def test_remove_church_role_when_absent_is_noop(fake_auth):
    fake_auth.add_user('u1', None)

    claims = identity.remove_church_role('u1', 'c1')

    assert claims.church_roles == {}
    assert fake_auth.claims['u1']['permissions'] == ['read:public']


def test_set_church_role_for_missing_user(fake_auth):
    with pytest.raises(NotFoundError):
        identity.set_church_role('ghost', 'c1', 'member')


def test_set_church_role_rejects_invalid_role(fake_auth):
    fake_auth.add_user('u1')

    with pytest.raises(ValidationError):
        identity.set_church_role('u1', 'c1', 'bishop')

    assert fake_auth.set_calls == 0


def test_set_default_claims(fake_auth):
    fake_auth.add_user('u1')

    identity.set_default_claims('u1')

    stored = fake_auth.claims['u1']
    assert stored['systemRole'] == 'user'
    assert stored['churchRoles'] == {}
    assert stored['permissions'] == ['read:public']
    assert 'createdAt' in stored


def test_set_system_role_mirrors_user_document(fake_db, fake_auth, sample_user):
    fake_db.seed('users/u1', sample_user)
    fake_auth.add_user('u1', {'systemRole': 'user', 'churchRoles': {'c1': 'member'}})

    claims = identity.set_system_role('u1', 'system_admin')

    assert claims.system_role == SystemRole.SYSTEM_ADMIN
    assert 'admin:all' in fake_auth.claims['u1']['permissions']
    assert 'read:church' in fake_auth.claims['u1']['permissions']
    assert fake_db.data('users/u1')['systemRole'] == 'system_admin'


def test_refresh_claims_recomputes_stale_permissions(fake_auth):
    fake_auth.add_user('u1', {'systemRole': 'user', 'churchRoles': {'c1': 'pastor'}, 'permissions': ['read:public']})

    claims = identity.refresh_claims('u1')

    assert 'admin:church' in claims.permissions
    assert 'refreshedAt' in fake_auth.claims['u1']


# Authorization checks

class TestAuthorizationChecks:
    """Tests for claim-based authorization helpers."""

    def test_church_admin_roles(self):
        pastor = UserClaims(church_roles={'c1': ChurchRole.PASTOR})
        leader = UserClaims(church_roles={'c1': ChurchRole.LEADER})

        assert identity.is_church_admin(pastor, 'c1')
        assert not identity.is_church_admin(pastor, 'c2')
        assert not identity.is_church_admin(leader, 'c1')

    def test_system_admin_manages_every_church(self):
        admin = UserClaims(system_role=SystemRole.SYSTEM_ADMIN)

        assert identity.is_church_admin(admin, 'any-church')
        assert identity.has_church_role(admin, 'any-church', [ChurchRole.MEMBER])

    def test_has_permission(self):
        member = UserClaims(permissions=['read:public', 'read:church'])
        admin = UserClaims(permissions=['admin:all'])

        assert identity.has_permission(member, 'read:church')
        assert not identity.has_permission(member, 'write:church')
        assert identity.has_permission(admin, 'write:church')

    def test_has_church_role(self):
        claims = UserClaims(church_roles={'c1': ChurchRole.STAFF})

        assert identity.has_church_role(claims, 'c1', [ChurchRole.STAFF, ChurchRole.LEADER])
        assert not identity.has_church_role(claims, 'c1', [ChurchRole.ADMIN])
        assert not identity.has_church_role(claims, 'c2', [ChurchRole.STAFF])
