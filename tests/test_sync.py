"""Tests for profile propagation to member records and sermons."""

import pytest

from churchdir.services.sync import speaker_name, sync_user_profile, tracked_changes


@pytest.fixture
def synced_user(fake_db, sample_user):
    """u1 is approved in c1 and c2 and has preached two sermons."""
    user = {
        **sample_user,
        'churchMemberships': [
            {'churchId': 'c1', 'churchName': 'Iglesia Central Lima', 'role': 'member', 'status': 'approved'},
            {'churchId': 'c2', 'churchName': 'Iglesia Arequipa', 'role': 'leader', 'status': 'approved'},
        ],
    }
    fake_db.seed('users/u1', user)
    for church_id in ('c1', 'c2'):
        fake_db.seed(f'churches/{church_id}', {'name': church_id})
        fake_db.seed(f'churches/{church_id}/members/u1', {
            'userId': 'u1',
            'displayName': 'Ana Torres',
            'email': 'ana@example.org',
            'photoURL': 'https://cdn.example.org/ana.jpg',
            'role': 'member',
            'status': 'approved',
        })
    fake_db.seed('sermons/s1', {'churchId': 'c1', 'speakerId': 'u1', 'speakerName': 'Ana Torres'})
    fake_db.seed('sermons/s2', {'churchId': 'c2', 'speakerId': 'u1', 'speakerName': 'Ana Torres'})
    fake_db.seed('sermons/s3', {'churchId': 'c1', 'speakerId': 'u9', 'speakerName': 'Otro'})
    return user


def test_tracked_changes_ignores_other_fields():
    before = {'displayName': 'Ana', 'lastLoginAt': 1, 'preferences': {'theme': 'light'}}
    after = {'displayName': 'Ana', 'lastLoginAt': 2, 'preferences': {'theme': 'dark'}}

    assert tracked_changes(before, after) == []


def test_speaker_name_fallback():
    assert speaker_name({'displayName': 'Pastor Ana'}) == 'Pastor Ana'
    assert speaker_name({'displayName': '', 'firstName': 'Ana', 'lastName': 'Torres'}) == 'Ana Torres'
    assert speaker_name({'firstName': 'Ana'}) == 'Ana'


def test_untracked_change_writes_nothing(fake_db, synced_user):
    """Editing e.g. lastLoginAt must not fan out."""
    after = {**synced_user, 'lastLoginAt': 'now'}

    result = sync_user_profile('u1', synced_user, after)

    assert result.changed_fields == []
    assert result.members_updated == 0
    assert fake_db.batch_sizes == []


def test_display_name_change_updates_members_and_sermons(fake_db, synced_user):
    after = {**synced_user, 'displayName': 'Ana María Torres'}

    result = sync_user_profile('u1', synced_user, after)

    assert result.changed_fields == ['displayName']
    assert result.members_updated == 2
    assert result.sermons_updated == 2
    assert result.batches_committed == 1

    for church_id in ('c1', 'c2'):
        record = fake_db.data(f'churches/{church_id}/members/u1')
        assert record['displayName'] == 'Ana María Torres'
        assert record['email'] == 'ana@example.org'
        assert record['status'] == 'approved'
    assert fake_db.data('sermons/s1')['speakerName'] == 'Ana María Torres'
    assert fake_db.data('sermons/s2')['speakerName'] == 'Ana María Torres'
    assert fake_db.data('sermons/s3')['speakerName'] == 'Otro'


def test_email_change_only_touches_member_records(fake_db, synced_user):
    after = {**synced_user, 'email': 'ana.torres@example.org'}

    result = sync_user_profile('u1', synced_user, after)

    assert result.members_updated == 2
    assert result.sermons_updated == 0
    assert fake_db.data('churches/c1/members/u1')['email'] == 'ana.torres@example.org'
    assert fake_db.data('churches/c1/members/u1')['displayName'] == 'Ana Torres'


def test_last_name_change_refreshes_speaker_name_only(fake_db, synced_user):
    """firstName/lastName are not copied to member records."""
    before = {**synced_user, 'displayName': ''}
    after = {**before, 'lastName': 'Torres Díaz'}

    result = sync_user_profile('u1', before, after)

    assert result.members_updated == 0
    assert result.sermons_updated == 2
    assert fake_db.data('sermons/s1')['speakerName'] == 'Ana Torres Díaz'
    assert 'lastName' not in fake_db.data('churches/c1/members/u1')


def test_missing_member_record_is_not_recreated(fake_db, synced_user):
    fake_db.docs.pop('churches/c2/members/u1')
    after = {**synced_user, 'photoURL': 'https://cdn.example.org/ana-2.jpg'}

    result = sync_user_profile('u1', synced_user, after)

    assert result.members_updated == 1
    assert fake_db.data('churches/c2/members/u1') is None
    assert fake_db.data('churches/c1/members/u1')['photoURL'] == 'https://cdn.example.org/ana-2.jpg'


def test_fan_out_is_chunked_across_batches(fake_db, synced_user):
    """Every copy is written even when the fan-out exceeds one batch."""
    for i in range(4, 9):
        fake_db.seed(f'sermons/s{i}', {'churchId': 'c1', 'speakerId': 'u1', 'speakerName': 'Ana Torres'})
    after = {**synced_user, 'displayName': 'Ana T.'}

    result = sync_user_profile('u1', synced_user, after, max_batch_writes=3)

    # 2 member records + 7 sermons
    assert result.members_updated + result.sermons_updated == 9
    assert fake_db.batch_sizes == [3, 3, 3]
    assert result.batches_committed == 3
    speaker_names = {
        fake_db.data(path)['speakerName']
        for path in fake_db.docs if path.startswith('sermons/') and path != 'sermons/s3'
    }
    assert speaker_names == {'Ana T.'}
