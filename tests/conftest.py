"""Shared fixtures: in-memory Firestore and Firebase Auth doubles.

The doubles implement only the client surface churchdir uses: documents,
subcollections, equality queries with ordering, count aggregations,
batches (atomic), get_all, last_update_time preconditions and the
SERVER_TIMESTAMP / Increment / ArrayUnion transforms.
"""

import copy
import itertools
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from firebase_admin import auth
from google.api_core.exceptions import AlreadyExists, FailedPrecondition, NotFound
from google.cloud import firestore
from google.cloud.firestore_v1.transforms import ArrayUnion, Increment

from churchdir.db import firestore_client


_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeSnapshot:
    def __init__(self, reference, data, update_time):
        self.reference = reference
        self.id = reference.id
        self._data = data
        self.update_time = update_time

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path):
        value = self._data
        for part in field_path.split('.'):
            value = (value or {}).get(part)
        return value


class FakeWriteOption:
    def __init__(self, last_update_time):
        self.last_update_time = last_update_time


class FakeDocumentReference:
    def __init__(self, db, path):
        self._db = db
        self.path = path

    @property
    def id(self):
        return self.path.split('/')[-1]

    @property
    def parent(self):
        return FakeCollectionReference(self._db, self.path.rsplit('/', 1)[0])

    def collection(self, name):
        return FakeCollectionReference(self._db, f"{self.path}/{name}")

    def get(self, transaction=None):
        self._db.reads += 1
        entry = self._db.docs.get(self.path)
        if entry is None:
            return FakeSnapshot(self, None, None)
        return FakeSnapshot(self, entry['data'], entry['update_time'])

    def set(self, data, merge=False):
        self._db._apply([('set', self, data, {'merge': merge})])

    def update(self, data, option=None):
        self._db._apply([('update', self, data, {'option': option})])

    def create(self, data):
        self._db._apply([('create', self, data, {})])

    def delete(self, option=None):
        self._db._apply([('delete', self, None, {'option': option})])

    def __eq__(self, other):
        return isinstance(other, FakeDocumentReference) and other.path == self.path

    def __hash__(self):
        return hash(self.path)

    def __repr__(self):
        return f"FakeDocumentReference({self.path!r})"


class FakeAggregationQuery:
    def __init__(self, query, alias):
        self._query = query
        self._alias = alias

    def get(self):
        count = len(list(self._query.stream()))
        return [[SimpleNamespace(alias=self._alias, value=count)]]


class FakeQuery:
    def __init__(self, db, collection_path, filters=None, orders=None):
        self._db = db
        self._collection_path = collection_path
        self._filters = list(filters or [])
        self._orders = list(orders or [])

    def where(self, field_path=None, op_string=None, value=None, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        assert op_string == '==', f"Fake query only supports '==', got {op_string}"
        return FakeQuery(self._db, self._collection_path,
                         self._filters + [(field_path, value)], self._orders)

    def order_by(self, field_path, direction=firestore.Query.ASCENDING):
        return FakeQuery(self._db, self._collection_path,
                         self._filters, self._orders + [(field_path, direction)])

    def count(self, alias=None):
        return FakeAggregationQuery(self, alias)

    def stream(self, transaction=None):
        snapshots = []
        for ref in self._db._children(self._collection_path):
            snapshot = ref.get()
            if all(snapshot.get(f) == v for f, v in self._filters):
                snapshots.append(snapshot)
        for field_path, direction in reversed(self._orders):
            snapshots.sort(
                key=lambda s: s.get(field_path),
                reverse=direction == firestore.Query.DESCENDING,
            )
        return iter(snapshots)

    def get(self, transaction=None):
        return list(self.stream())


class FakeCollectionReference(FakeQuery):
    def __init__(self, db, path):
        super().__init__(db, path)
        self.path = path

    @property
    def id(self):
        return self.path.split('/')[-1]

    @property
    def parent(self):
        if '/' not in self.path:
            return None
        return FakeDocumentReference(self._db, self.path.rsplit('/', 1)[0])

    def document(self, document_id):
        return FakeDocumentReference(self._db, f"{self.path}/{document_id}")

    def list_documents(self):
        return self._db._children(self.path)


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(('set', ref, data, {'merge': merge}))

    def update(self, ref, data, option=None):
        self._ops.append(('update', ref, data, {'option': option}))

    def create(self, ref, data):
        self._ops.append(('create', ref, data, {}))

    def delete(self, ref, option=None):
        self._ops.append(('delete', ref, None, {'option': option}))

    def commit(self):
        self._db.batch_sizes.append(len(self._ops))
        self._db._apply(self._ops)
        self._ops = []


class FakeFirestore:
    """In-memory stand-in for google.cloud.firestore_v1.Client."""

    def __init__(self):
        self.docs = {}
        self.batch_sizes = []
        self.reads = 0
        self._clock = itertools.count(1)
        # Callables (op, path) -> Exception | None, for fault injection
        self.fail_hooks = []

    # Client surface

    def collection(self, name):
        return FakeCollectionReference(self, name)

    def document(self, path):
        return FakeDocumentReference(self, path)

    def batch(self):
        return FakeBatch(self)

    def get_all(self, references):
        for ref in references:
            yield ref.get()

    def write_option(self, last_update_time=None):
        return FakeWriteOption(last_update_time)

    # Test helpers

    def seed(self, path, data):
        self.docs[path] = {'data': copy.deepcopy(data), 'update_time': self._tick()}

    def data(self, path):
        entry = self.docs.get(path)
        return copy.deepcopy(entry['data']) if entry else None

    def fail_on(self, op, path_fragment, exc=None):
        """Make writes of kind op to paths containing path_fragment raise."""
        error = exc or RuntimeError(f"injected {op} failure on {path_fragment}")

        def hook(kind, path):
            if kind == op and path_fragment in path:
                return error
            return None

        self.fail_hooks.append(hook)

    # Internals

    def _tick(self):
        return _EPOCH + timedelta(microseconds=next(self._clock))

    def _children(self, collection_path):
        depth = collection_path.count('/') + 1
        return [
            FakeDocumentReference(self, path)
            for path in sorted(self.docs)
            if path.startswith(collection_path + '/') and path.count('/') == depth
        ]

    def _resolve(self, value, current, now):
        if value is firestore.SERVER_TIMESTAMP:
            return now
        if isinstance(value, Increment):
            return (current or 0) + value.value
        if isinstance(value, ArrayUnion):
            merged = list(current or [])
            for item in value.values:
                if item not in merged:
                    merged.append(copy.deepcopy(item))
            return merged
        if isinstance(value, dict):
            return {k: self._resolve(v, (current or {}).get(k) if isinstance(current, dict) else None, now)
                    for k, v in value.items()}
        return copy.deepcopy(value)

    def _set_path(self, doc, dotted, value, now):
        parts = dotted.split('.')
        target = doc
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        if value is firestore.DELETE_FIELD:
            target.pop(parts[-1], None)
        else:
            target[parts[-1]] = self._resolve(value, target.get(parts[-1]), now)

    def _check(self, ops):
        for kind, ref, _, kwargs in ops:
            for hook in self.fail_hooks:
                error = hook(kind, ref.path)
                if error is not None:
                    raise error
            entry = self.docs.get(ref.path)
            if kind == 'create' and entry is not None:
                raise AlreadyExists(f"Document already exists: {ref.path}")
            option = kwargs.get('option')
            if kind == 'update' and entry is None and option is None:
                raise NotFound(f"No document to update: {ref.path}")
            if option is not None and (entry is None or option.last_update_time != entry['update_time']):
                raise FailedPrecondition(f"Stale last_update_time for {ref.path}")

    def _apply(self, ops):
        self._check(ops)
        for kind, ref, data, kwargs in ops:
            now = self._tick()
            if kind == 'delete':
                self.docs.pop(ref.path, None)
                continue
            entry = self.docs.get(ref.path)
            if kind in ('set', 'create') and not kwargs.get('merge'):
                doc = {}
                for key, value in data.items():
                    doc[key] = self._resolve(value, None, now)
            else:
                doc = copy.deepcopy(entry['data']) if entry else {}
                for key, value in data.items():
                    if kind == 'update':
                        self._set_path(doc, key, value, now)
                    else:
                        doc[key] = self._resolve(value, doc.get(key), now)
            self.docs[ref.path] = {'data': doc, 'update_time': now}


class FakeUserRecord:
    def __init__(self, uid, custom_claims=None):
        self.uid = uid
        self.custom_claims = custom_claims


class FakeAuth:
    """In-memory stand-in for firebase_admin.auth.Client."""

    def __init__(self):
        self.claims = {}
        self.tokens = {}
        self.fail_set_claims = False
        self.set_calls = 0

    def add_user(self, uid, claims=None):
        self.claims[uid] = copy.deepcopy(claims)

    def get_user(self, uid):
        if uid not in self.claims:
            raise auth.UserNotFoundError(f"No user record found for uid: {uid}")
        return FakeUserRecord(uid, copy.deepcopy(self.claims[uid]))

    def set_custom_user_claims(self, uid, custom_claims):
        self.set_calls += 1
        if self.fail_set_claims:
            raise RuntimeError("identity provider unavailable")
        if uid not in self.claims:
            raise auth.UserNotFoundError(f"No user record found for uid: {uid}")
        self.claims[uid] = copy.deepcopy(custom_claims)

    def issue_token(self, token, uid, **claims):
        self.tokens[token] = {'uid': uid, 'email': f'{uid}@example.org', **claims}

    def verify_id_token(self, id_token, check_revoked=False):
        if id_token == 'expired':
            raise auth.ExpiredIdTokenError('Token expired', cause=None)
        if id_token not in self.tokens:
            raise auth.InvalidIdTokenError('Invalid token')
        return copy.deepcopy(self.tokens[id_token])


@pytest.fixture
def fake_db(monkeypatch):
    """Route every get_firestore_client() call to an in-memory Firestore."""
    db = FakeFirestore()
    monkeypatch.setattr(firestore_client, '_firestore_client', db)
    return db


@pytest.fixture
def fake_auth(mocker):
    """Route Auth calls (claims, token verification) to an in-memory double."""
    fake = FakeAuth()
    mocker.patch('churchdir.identity.get_auth_client', return_value=fake)
    mocker.patch('churchdir.api.auth.get_auth_client', return_value=fake)
    return fake


@pytest.fixture
def sample_user():
    return {
        'email': 'ana@example.org',
        'displayName': 'Ana Torres',
        'firstName': 'Ana',
        'lastName': 'Torres',
        'photoURL': 'https://cdn.example.org/ana.jpg',
        'systemRole': 'user',
        'churchMemberships': [],
        'registrationAnswers': [],
    }


@pytest.fixture
def sample_church():
    return {
        'name': 'Iglesia Central Lima',
        'level': 'local',
        'status': 'active',
        'stats': {'memberCount': 5, 'eventCount': 2, 'sermonCount': 9},
    }


@pytest.fixture
def seeded(fake_db, fake_auth, sample_user, sample_church):
    """User u1 and church c1 exist; u1 has an Auth record with default claims."""
    fake_db.seed('users/u1', sample_user)
    fake_db.seed('churches/c1', sample_church)
    fake_auth.add_user('u1', {'systemRole': 'user', 'churchRoles': {}, 'permissions': ['read:public']})
    return fake_db
