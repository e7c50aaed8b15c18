"""
API tests: feed, photo view/edit/delete, people, tags, upload and face
detection routes through FastAPI's TestClient.

Run: python3 -m pytest test_api.py -v
  or: python3 test_api.py
"""

import base64
import os
import shutil
import sys
import tempfile
import unittest
from io import BytesIO
from unittest.mock import patch

from PIL import Image

# Ensure project root is on sys.path
_script_dir = os.path.dirname(os.path.abspath(__file__))
if _script_dir not in sys.path:
    sys.path.insert(0, _script_dir)

from fastapi.testclient import TestClient


def _png_bytes(width=80, height=60, color=(10, 120, 200)):
    buf = BytesIO()
    Image.new('RGB', (width, height), color).save(buf, format='PNG')
    return buf.getvalue()


class _ApiTestCase(unittest.TestCase):
    """App on a temporary database and album directory, with three users."""

    def setUp(self):
        from api import create_app
        from api.auth import create_access_token
        from db import get_connection

        self.tmpdir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.tmpdir, 'album.db')
        self.album_dir = os.path.join(self.tmpdir, 'album')
        os.makedirs(self.album_dir)
        self._env = patch.dict(os.environ, {'DB_PATH': self.db_path, 'ALBUM_DIR': self.album_dir})
        self._env.start()

        self.client = TestClient(create_app())
        self.client.__enter__()

        with get_connection(self.db_path) as conn:
            self.alice = conn.execute("INSERT INTO users (username) VALUES ('alice')").lastrowid
            self.bob = conn.execute("INSERT INTO users (username) VALUES ('bob')").lastrowid
            self.admin = conn.execute(
                "INSERT INTO users (username, is_admin) VALUES ('root', 1)").lastrowid
            conn.commit()

        self.tokens = {
            uid: create_access_token({'sub': str(uid), 'username': name, 'admin': is_admin})
            for uid, name, is_admin in (
                (self.alice, 'alice', False), (self.bob, 'bob', False), (self.admin, 'root', True))
        }

    def tearDown(self):
        self.client.__exit__(None, None, None)
        self._env.stop()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def auth(self, uid):
        return {'Authorization': f'Bearer {self.tokens[uid]}'}

    def add_photo(self, photo_id, created_date, owner=None, tags=(), people=(), write_file=True):
        from db import get_connection
        path = os.path.join(self.album_dir, f'{photo_id}.png')
        if write_file:
            with open(path, 'wb') as f:
                f.write(_png_bytes())
        with get_connection(self.db_path) as conn:
            conn.execute(
                "INSERT INTO files (id, path, created_date, uploaded_by) VALUES (?, ?, ?, ?)",
                (photo_id, path, created_date, owner),
            )
            for tag in tags:
                conn.execute("INSERT OR IGNORE INTO tags (tag) VALUES (?)", (tag,))
                conn.execute("INSERT INTO tag_files (tag, file_id) VALUES (?, ?)", (tag, photo_id))
            for user_id, box in people:
                conn.execute(
                    "INSERT INTO user_files (user_id, file_id, x, y, width, height) VALUES (?, ?, ?, ?, ?, ?)",
                    [user_id, photo_id] + list(box or (None, None, None, None)),
                )
            conn.commit()
        return path


# ============================================================
# Feed
# ============================================================

class TestFeedApi(_ApiTestCase):

    def setUp(self):
        super().setUp()
        self.add_photo('p1', '2024-01-10', owner=self.alice, tags=['beach'])
        self.add_photo('p2', '2024-01-09', owner=self.bob, tags=['beach', 'sunset'], people=[(self.bob, None)])
        self.add_photo('p3', '2023-12-31', owner=self.alice, write_file=False)

    def _summary(self, body):
        out = []
        for el in body['elements']:
            out.append(el['photo']['id'] if el['kind'] == 'photo' else f"{el['kind']}:{el.get(el['kind'])}")
        return out

    def test_requires_authentication(self):
        self.assertEqual(self.client.get('/api/feed').status_code, 401)
        bad = {'Authorization': 'Bearer not-a-token'}
        self.assertEqual(self.client.get('/api/feed', headers=bad).status_code, 401)

    def test_pages_are_grouped_across_requests(self):
        r1 = self.client.get('/api/feed', params={'offset': 0, 'count': 2}, headers=self.auth(self.alice))
        self.assertEqual(r1.status_code, 200)
        self.assertEqual(self._summary(r1.json()), ['year:2024', 'month:01', 'p1', 'p2'])
        self.assertTrue(r1.json()['has_more'])

        r2 = self.client.get('/api/feed', params={'offset': 2, 'count': 2}, headers=self.auth(self.alice))
        self.assertEqual(self._summary(r2.json()), ['year:2023', 'month:12', 'p3'])
        self.assertFalse(r2.json()['has_more'])

    def test_storage_path_not_exposed(self):
        r = self.client.get('/api/feed', headers=self.auth(self.alice))
        photos = [el['photo'] for el in r.json()['elements'] if el['kind'] == 'photo']
        self.assertTrue(photos)
        for photo in photos:
            self.assertNotIn('path', photo)

    def test_filters_from_query_params(self):
        r = self.client.get('/api/feed', params={'tag_mode': 'only', 'tags': 'Beach'},
                            headers=self.auth(self.alice))
        self.assertEqual(self._summary(r.json()), ['year:2024', 'month:01', 'p1'])

        r = self.client.get('/api/feed', params={'person_mode': 'NOT', 'people': f'{self.bob},junk'},
                            headers=self.auth(self.alice))
        self.assertEqual([x for x in self._summary(r.json()) if x.startswith('p')], ['p1', 'p3'])

        r = self.client.get('/api/feed', params={'tag_mode': 'MAYBE', 'tags': 'beach'},
                            headers=self.auth(self.alice))
        self.assertEqual([x for x in self._summary(r.json()) if x.startswith('p')], ['p1', 'p2', 'p3'])

    def test_count_clamped_and_validated(self):
        r = self.client.get('/api/feed', params={'count': 100000}, headers=self.auth(self.alice))
        self.assertEqual(r.json()['count'], 100)
        self.assertEqual(self.client.get('/api/feed', params={'offset': -1},
                                         headers=self.auth(self.alice)).status_code, 422)

    def test_embedded_image_failure_is_isolated(self):
        r = self.client.get('/api/feed', params={'embed': 'true'}, headers=self.auth(self.alice))
        self.assertEqual(r.status_code, 200)
        images = {el['photo']['id']: el['photo']['image']
                  for el in r.json()['elements'] if el['kind'] == 'photo'}
        self.assertIsNotNone(images['p1'])
        self.assertIsNotNone(images['p2'])
        self.assertIsNone(images['p3'])
        Image.open(BytesIO(base64.b64decode(images['p1']))).load()

    def test_storage_failure_is_503(self):
        from feed import FeedUnavailableError
        with patch('api.routers.feed.fetch_feed_page', side_effect=FeedUnavailableError('down')):
            r = self.client.get('/api/feed', headers=self.auth(self.alice))
        self.assertEqual(r.status_code, 503)


# ============================================================
# Photos
# ============================================================

class TestPhotoApi(_ApiTestCase):

    def setUp(self):
        super().setUp()
        self.path1 = self.add_photo('p1', '2024-01-10', owner=self.alice, tags=['beach'])
        self.add_photo('p2', '2024-01-09', owner=self.bob, people=[(self.alice, (10, 10, 20, 20))])
        self.add_photo('p3', '2023-12-31', owner=self.alice, write_file=False)

    def test_get_photo(self):
        r = self.client.get('/api/photos/p1', headers=self.auth(self.bob))
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body['uploader'], 'alice')
        self.assertEqual(body['tags'], ['beach'])
        img = Image.open(BytesIO(base64.b64decode(body['image'])))
        self.assertEqual(img.size, (80, 60))

    def test_get_missing_photo(self):
        self.assertEqual(self.client.get('/api/photos/nope', headers=self.auth(self.bob)).status_code, 404)

    def test_get_photo_with_missing_file(self):
        self.assertEqual(self.client.get('/api/photos/p3', headers=self.auth(self.alice)).status_code, 500)

    def test_owner_can_edit(self):
        r = self.client.patch('/api/photos/p1', json={'created_date': '2019-02-28', 'location': 'Oslo'},
                              headers=self.auth(self.alice))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['created_date'], '2019-02-28')
        self.assertEqual(r.json()['location'], 'Oslo')

        r = self.client.patch('/api/photos/p1', json={'location': ''}, headers=self.auth(self.alice))
        self.assertIsNone(r.json()['location'])
        self.assertEqual(r.json()['created_date'], '2019-02-28')

    def test_other_user_cannot_edit_but_admin_can(self):
        r = self.client.patch('/api/photos/p1', json={'location': 'x'}, headers=self.auth(self.bob))
        self.assertEqual(r.status_code, 403)
        r = self.client.patch('/api/photos/p1', json={'location': 'x'}, headers=self.auth(self.admin))
        self.assertEqual(r.status_code, 200)

    def test_invalid_created_date(self):
        for bad in ('2019-13-01', '2019-02-32', '19-02-01', '2019/02/01'):
            r = self.client.patch('/api/photos/p1', json={'created_date': bad}, headers=self.auth(self.alice))
            self.assertEqual(r.status_code, 400, bad)

    def test_delete(self):
        r = self.client.delete('/api/photos/p1', headers=self.auth(self.bob))
        self.assertEqual(r.status_code, 403)

        r = self.client.delete('/api/photos/p1', headers=self.auth(self.alice))
        self.assertEqual(r.status_code, 200)
        self.assertFalse(os.path.exists(self.path1))
        self.assertEqual(self.client.get('/api/photos/p1', headers=self.auth(self.alice)).status_code, 404)

    def test_admin_delete_cascades_people(self):
        from db import get_connection
        r = self.client.delete('/api/photos/p2', headers=self.auth(self.admin))
        self.assertEqual(r.status_code, 200)
        with get_connection(self.db_path) as conn:
            self.assertEqual(conn.execute("SELECT COUNT(*) FROM user_files").fetchone()[0], 0)

    def test_neighbor(self):
        get = lambda pid, step: self.client.get(f'/api/photos/{pid}/neighbor', params={'step': step},
                                                headers=self.auth(self.alice))
        self.assertEqual(get('p2', 1).json()['id'], 'p3')
        self.assertEqual(get('p2', -1).json()['id'], 'p1')
        self.assertIsNone(get('p3', 1).json()['id'])
        self.assertIsNone(get('p1', -1).json()['id'])
        self.assertEqual(get('p1', 2).status_code, 400)


# ============================================================
# People and tags
# ============================================================

class TestPeopleApi(_ApiTestCase):

    def setUp(self):
        super().setUp()
        self.add_photo('p1', '2024-01-10', owner=self.alice,
                       people=[(self.alice, (10, 10, 20, 20)), (self.bob, None)])

    def test_people_in_photo_with_crops(self):
        r = self.client.get('/api/photos/p1/people', headers=self.auth(self.bob))
        self.assertEqual(r.status_code, 200)
        people = {p['name']: p for p in r.json()}
        self.assertEqual(people['alice']['bounds'], {'x': 10, 'y': 10, 'width': 20, 'height': 20})
        crop = Image.open(BytesIO(base64.b64decode(people['alice']['image'])))
        self.assertEqual(crop.size, (40, 40))
        self.assertIsNone(people['bob']['bounds'])
        self.assertIsNotNone(people['bob']['image'])

    def test_update_people(self):
        body = {
            'delete': [self.bob],
            'change': [{'old_id': self.alice, 'name': 'alice', 'bounds': {'x': 0, 'y': 0, 'width': 5, 'height': 5}}],
            'add': [{'name': 'grandma'}, {'name': '  '}],
        }
        r = self.client.put('/api/photos/p1/people', json=body, headers=self.auth(self.bob))
        self.assertEqual(r.status_code, 200)
        people = {p['name']: p for p in r.json()}
        self.assertEqual(set(people), {'alice', 'grandma'})
        self.assertEqual(people['alice']['bounds']['width'], 5)
        self.assertIsNone(people['grandma']['bounds'])

    def test_negative_bounds_rejected(self):
        body = {'add': [{'name': 'x', 'bounds': {'x': -1, 'y': 0, 'width': 5, 'height': 5}}]}
        r = self.client.put('/api/photos/p1/people', json=body, headers=self.auth(self.bob))
        self.assertEqual(r.status_code, 422)

    def test_invalid_stored_bounds_logged_with_traceback(self):
        from api.db_helpers import encode_face_crops
        from utils import BoundingBox
        path = os.path.join(self.album_dir, 'p1.png')
        people = [
            {'id': self.alice, 'name': 'alice', 'bounds': BoundingBox(x=-3, y=0, width=5, height=5)},
            {'id': self.bob, 'name': 'bob', 'bounds': BoundingBox(x=1, y=1, width=5, height=5)},
        ]
        with self.assertLogs(level='ERROR') as logs:
            people = encode_face_crops(path, people)
        self.assertIsNone(people[0]['image'])
        self.assertIsNotNone(people[1]['image'])
        self.assertEqual(len(logs.records), 1)
        self.assertIsNotNone(logs.records[0].exc_info)

    def test_people_list_excludes_admins(self):
        r = self.client.get('/api/people', headers=self.auth(self.alice))
        self.assertEqual([p['username'] for p in r.json()], ['alice', 'bob'])

    def test_tags(self):
        self.add_photo('p2', '2024-01-09', tags=['sunset', 'beach'])
        r = self.client.get('/api/tags', headers=self.auth(self.alice))
        self.assertEqual(r.json(), {'tags': ['beach', 'sunset']})


# ============================================================
# Upload and face detection
# ============================================================

class TestUploadApi(_ApiTestCase):

    def _file(self, filename='holiday.png', **extra):
        item = {'filename': filename, 'data': base64.b64encode(_png_bytes()).decode()}
        item.update(extra)
        return item

    def test_upload_batch_isolates_failures(self):
        from utils import BoundingBox
        face = BoundingBox(x=4, y=5, width=10, height=12)
        files = [
            self._file(tags=['Summer Holiday', 'bad;tag'], people=[{'name': 'grandma'}],
                       created_date='2022-07-01'),
            self._file('broken.png', data='@@@'),
            self._file('noext'),
        ]
        with patch('api.routers.upload.detect_faces', return_value=[face]):
            r = self.client.post('/api/upload', json={'files': files}, headers=self.auth(self.alice))
        self.assertEqual(r.status_code, 200)
        ok, broken, noext = r.json()['results']

        self.assertIsNone(ok['error'])
        self.assertEqual(ok['faces'], [face.model_dump()])
        self.assertIsNotNone(broken['error'])
        self.assertIsNone(broken['id'])
        self.assertIsNotNone(noext['error'])

        photo = self.client.get(f"/api/photos/{ok['id']}", headers=self.auth(self.alice)).json()
        self.assertEqual(photo['created_date'], '2022-07-01')
        self.assertEqual(photo['uploaded_by'], self.alice)
        self.assertEqual(photo['tags'], ['summer-holiday'])
        self.assertEqual(os.listdir(self.album_dir), [f"{ok['id']}.png"])

        people = self.client.get(f"/api/photos/{ok['id']}/people", headers=self.auth(self.alice)).json()
        self.assertEqual([p['name'] for p in people], ['grandma'])

    def test_detector_failure_means_no_faces(self):
        with patch('faces.detector.get_detector', side_effect=RuntimeError('no cascade')):
            r = self.client.post('/api/upload', json={'files': [self._file()]}, headers=self.auth(self.alice))
        result = r.json()['results'][0]
        self.assertIsNone(result['error'])
        self.assertEqual(result['faces'], [])
        self.assertIsNotNone(result['id'])

    def test_invalid_created_date(self):
        r = self.client.post('/api/upload', json={'files': [self._file(created_date='2022-7-1')]},
                             headers=self.auth(self.alice))
        self.assertIsNotNone(r.json()['results'][0]['error'])
        self.assertEqual(os.listdir(self.album_dir), [])

    def test_empty_batch(self):
        r = self.client.post('/api/upload', json={'files': []}, headers=self.auth(self.alice))
        self.assertEqual(r.status_code, 400)

    def test_oversized_image_rejected_without_failing_batch(self):
        bomb = {'filename': 'huge.png', 'data': base64.b64encode(_png_bytes(80, 60)).decode()}
        small = {'filename': 'small.png', 'data': base64.b64encode(_png_bytes(5, 5)).decode()}
        with patch('PIL.Image.MAX_IMAGE_PIXELS', 100), \
                patch('api.routers.upload.detect_faces', return_value=[]):
            r = self.client.post('/api/upload', json={'files': [bomb, small]}, headers=self.auth(self.alice))
        self.assertEqual(r.status_code, 200)
        huge, ok = r.json()['results']
        self.assertEqual(huge['filename'], 'huge.png')
        self.assertIsNotNone(huge['error'])
        self.assertIsNone(huge['id'])
        self.assertIsNone(ok['error'])
        self.assertEqual(os.listdir(self.album_dir), [f"{ok['id']}.png"])

    def test_unexpected_worker_error_reported_per_file(self):
        from api.routers import upload
        real_store = upload.store_upload

        def store(item, user_id, album_dir):
            if item.filename == 'crash.png':
                raise RuntimeError('worker died')
            return real_store(item, user_id, album_dir)

        files = [self._file('crash.png'), self._file('fine.png')]
        with patch('api.routers.upload.store_upload', side_effect=store), \
                patch('api.routers.upload.detect_faces', return_value=[]):
            r = self.client.post('/api/upload', json={'files': files}, headers=self.auth(self.alice))
        self.assertEqual(r.status_code, 200)
        crash, fine = r.json()['results']
        self.assertEqual(crash['filename'], 'crash.png')
        self.assertEqual(crash['error'], 'Upload failed')
        self.assertIsNone(fine['error'])
        self.assertIsNotNone(fine['id'])

    def test_zeroed_exif_date_is_ignored(self):
        img = Image.new('RGB', (8, 8), (90, 90, 90))
        exif = Image.Exif()
        exif[306] = '0000:00:00 00:00:00'
        buf = BytesIO()
        img.save(buf, format='JPEG', exif=exif.tobytes())
        item = {'filename': 'camera.jpg', 'data': base64.b64encode(buf.getvalue()).decode()}
        with patch('api.routers.upload.detect_faces', return_value=[]):
            r = self.client.post('/api/upload', json={'files': [item]}, headers=self.auth(self.alice))
        result = r.json()['results'][0]
        self.assertIsNone(result['error'])
        photo = self.client.get(f"/api/photos/{result['id']}", headers=self.auth(self.alice)).json()
        self.assertIsNone(photo['created_date'])

    def test_detect_faces_route(self):
        from utils import BoundingBox
        payload = 'data:image/png;base64,' + base64.b64encode(_png_bytes()).decode()
        with patch('api.routers.faces.detect_faces', return_value=[BoundingBox(x=1, y=2, width=3, height=4)]):
            r = self.client.post('/api/faces', json={'data': payload}, headers=self.auth(self.bob))
        self.assertEqual(r.json(), {'faces': [{'x': 1, 'y': 2, 'width': 3, 'height': 4}]})

        r = self.client.post('/api/faces', json={'data': 'not-an-image'}, headers=self.auth(self.bob))
        self.assertEqual(r.status_code, 400)


if __name__ == '__main__':
    unittest.main()
