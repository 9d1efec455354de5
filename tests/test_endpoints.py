"""HTTP-level tests for the upload, info and download endpoints."""

import re
from concurrent.futures import ThreadPoolExecutor

import pytest
from starlette.requests import Request

from server import config, service_locator
from server.exceptions import PayloadTooLargeError
from server.metadata_store import MetadataStore
from server.rate_limiter import SlidingWindowRateLimiter
from server.routes.file_routes import content_disposition
from server.routes.upload_routes import bounded_receive, reject_oversized_declaration
from server.services.upload_service import UploadService
from server.storage import ContentStorage

SHORT_ID = re.compile(r'^[A-Za-z0-9]{10}$')


def upload(client, content=b'0123456789', filename='notes.txt', content_type='text/plain', path='/api/upload'):
    return client.post(path, files={'file': (filename, content, content_type)})


def assert_error(response, status_code, code):
    assert response.status_code == status_code
    body = response.json()
    assert body['success'] is False
    assert body['code'] == code
    assert body['error']


class TestUpload:
    def test_api_upload_returns_link_and_id(self, client, server_state):
        response = upload(client)

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert SHORT_ID.match(body['id'])
        assert body['url'] == f"http://testserver/{body['id']}"
        assert body['filename'] == 'notes.txt'
        assert body['size'] == 10

        assert server_state.store.count() == 1
        assert server_state.storage.read_bytes(f"{body['id']}.txt") == b'0123456789'

    def test_form_upload_has_no_id(self, client):
        response = upload(client, path='/upload')

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {'success', 'url', 'filename', 'size'}
        assert SHORT_ID.match(body['url'].rsplit('/', 1)[1])

    def test_zero_byte_image_is_accepted(self, client):
        response = upload(client, content=b'', filename='blank.png', content_type='image/png')

        assert response.status_code == 200
        assert response.json()['size'] == 0

    def test_public_base_url_override(self, client, monkeypatch):
        monkeypatch.setattr(config, 'PUBLIC_BASE_URL', 'https://drop.example.com')

        body = upload(client).json()

        assert body['url'] == f"https://drop.example.com/{body['id']}"

    def test_missing_file_part(self, client, server_state):
        response = client.post('/api/upload', data={'note': 'no file here'})

        assert_error(response, 400, 'NO_FILE')
        assert server_state.store.count() == 0

    def test_empty_request(self, client):
        assert_error(client.post('/upload'), 400, 'NO_FILE')

    def test_unsupported_type_is_rejected(self, client, server_state):
        response = upload(client, content=b'MZ', filename='setup.exe', content_type='application/x-msdownload')

        assert_error(response, 400, 'UNSUPPORTED_TYPE')
        assert server_state.store.count() == 0
        assert server_state.storage.list_stored() == []

    def test_oversized_file_is_rejected(self, client, server_state, monkeypatch):
        monkeypatch.setattr(config, 'MAX_UPLOAD_SIZE', 16)

        response = upload(client, content=b'x' * 100, filename='big.zip', content_type='application/zip')

        assert_error(response, 400, 'PAYLOAD_TOO_LARGE')
        assert server_state.store.count() == 0
        assert server_state.storage.list_stored() == []

    def test_failed_registration_returns_upload_failed(self, client, server_state, monkeypatch):
        def fail(record):
            raise OSError("disk full")

        monkeypatch.setattr(server_state.store, 'register', fail)

        response = upload(client)

        assert_error(response, 500, 'UPLOAD_FAILED')
        assert server_state.storage.list_stored() == []

    def test_chunked_oversized_body_is_cut_off_while_reading(self, client, server_state, monkeypatch):
        monkeypatch.setattr(config, 'MAX_UPLOAD_SIZE', 16)
        reached_service = []

        async def record_call(self, upload, base_url):
            reached_service.append(upload)

        monkeypatch.setattr(UploadService, 'upload_file', record_call)

        boundary = 'shortdropboundary'
        head = (
            f'--{boundary}\r\n'
            'Content-Disposition: form-data; name="file"; filename="big.zip"\r\n'
            'Content-Type: application/zip\r\n\r\n'
        ).encode()

        def body():
            yield head
            for _ in range(20):
                yield b'x' * 8192
            yield f'\r\n--{boundary}--\r\n'.encode()

        response = client.post(
            '/api/upload',
            content=body(),
            headers={'Content-Type': f'multipart/form-data; boundary={boundary}'}
        )

        assert_error(response, 400, 'PAYLOAD_TOO_LARGE')
        assert reached_service == []
        assert server_state.store.count() == 0

    def test_concurrent_uploads_get_distinct_ids(self, client, server_state):
        payloads = [f'payload {n}'.encode() for n in range(4)]

        with ThreadPoolExecutor(max_workers=4) as pool:
            responses = list(pool.map(
                lambda data: upload(client, content=data, filename='part.txt'),
                payloads
            ))

        ids = [r.json()['id'] for r in responses]
        assert all(r.status_code == 200 for r in responses)
        assert len(set(ids)) == len(payloads)
        assert server_state.store.count() == len(payloads)
        for file_id, data in zip(ids, payloads):
            assert client.get(f'/{file_id}').content == data

    def test_rate_limit_applies_before_body_is_read(self, client):
        service_locator.set_rate_limiter(SlidingWindowRateLimiter(limit=2, window_seconds=900))

        assert upload(client).status_code == 200
        assert_error(client.post('/upload'), 400, 'NO_FILE')

        response = client.post('/api/upload')

        assert_error(response, 429, 'RATE_LIMITED')
        assert int(response.headers['Retry-After']) >= 1

    def test_both_upload_paths_share_the_limit(self, client):
        service_locator.set_rate_limiter(SlidingWindowRateLimiter(limit=1, window_seconds=900))

        assert upload(client, path='/upload').status_code == 200
        assert upload(client, path='/api/upload').status_code == 429


class TestRetrieval:
    def test_download_returns_exact_bytes(self, client):
        file_id = upload(client).json()['id']

        response = client.get(f'/{file_id}')

        assert response.status_code == 200
        assert response.content == b'0123456789'
        assert response.headers['content-type'].startswith('text/plain')
        assert response.headers['content-length'] == '10'
        assert response.headers['content-disposition'] == 'inline; filename="notes.txt"'

    def test_download_binary_content_type(self, client):
        payload = bytes(range(256))
        file_id = upload(client, content=payload, filename='photo.jpg', content_type='image/jpeg').json()['id']

        response = client.get(f'/{file_id}')

        assert response.content == payload
        assert response.headers['content-type'] == 'image/jpeg'

    def test_info_returns_record(self, client):
        file_id = upload(client).json()['id']

        response = client.get(f'/api/info/{file_id}')

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        data = body['data']
        assert data['id'] == file_id
        assert data['originalName'] == 'notes.txt'
        assert data['storedFilename'] == f'{file_id}.txt'
        assert data['mimeType'] == 'text/plain'
        assert data['sizeBytes'] == 10
        assert data['category'] == 'document'
        assert data['publicUrl'] == f'http://testserver/{file_id}'
        assert data['uploadedAt']

    @pytest.mark.parametrize('path', ['/unknown001', '/bad.id', '/api/info/unknown001', '/api/info/bad.id'])
    def test_unknown_or_malformed_ids(self, client, path):
        assert_error(client.get(path), 404, 'NOT_FOUND')

    def test_unrouted_path(self, client):
        assert_error(client.get('/a/b/c'), 404, 'NOT_FOUND')

    def test_stored_file_is_served_by_name(self, client):
        file_id = upload(client, filename='n.txt').json()['id']

        response = client.get(f'/files/{file_id}.txt')

        assert response.status_code == 200
        assert response.content == b'0123456789'
        assert response.headers['content-type'].startswith('text/plain')
        assert response.headers['X-Request-ID']

    def test_stored_file_uses_registered_type(self, client):
        file_id = upload(client, content=b'RIFF', filename='clip.data', content_type='audio/wav').json()['id']

        response = client.get(f'/files/{file_id}.data')

        assert response.headers['content-type'] == 'audio/wav'

    def test_unregistered_stored_file_type_comes_from_extension(self, client, server_state):
        server_state.storage.ensure_directory()
        (server_state.storage.root / 'loose00001.png').write_bytes(b'\x89PNG')

        response = client.get('/files/loose00001.png')

        assert response.status_code == 200
        assert response.headers['content-type'] == 'image/png'

    @pytest.mark.parametrize('name', ['missing0001.txt', '.hidden.txt.part'])
    def test_stored_file_unknown_or_hidden(self, client, server_state, name):
        server_state.storage.ensure_directory()
        (server_state.storage.root / '.hidden.txt.part').write_bytes(b'partial')

        assert client.get(f'/files/{name}').status_code == 404

    def test_unexpected_error_keeps_envelope_and_request_id(self, client, server_state, monkeypatch):
        def explode(file_id):
            raise RuntimeError("snapshot backend exploded")

        monkeypatch.setattr(server_state.store, 'get', explode)

        response = client.get('/api/info/abcdef')

        assert_error(response, 500, 'INTERNAL_ERROR')
        assert response.headers['X-Request-ID']

    def test_uploads_survive_restart(self, client, server_state):
        file_id = upload(client).json()['id']

        service_locator.set_metadata_store(MetadataStore(str(server_state.store.path)))
        service_locator.set_content_storage(ContentStorage(str(server_state.storage.root)))

        response = client.get(f'/{file_id}')
        assert response.status_code == 200
        assert response.content == b'0123456789'
        assert client.get(f'/api/info/{file_id}').json()['data']['id'] == file_id


class TestSite:
    def test_index_page(self, client):
        response = client.get('/')

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/html')
        assert '<form' in response.text or 'drop' in response.text.lower()

    def test_static_assets(self, client):
        assert client.get('/static/script.js').status_code == 200
        assert client.get('/static/style.css').status_code == 200

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.json() == {'status': 'healthy', 'service': 'shortdrop'}

    def test_every_response_has_request_id(self, client):
        assert client.get('/health').headers.get('X-Request-ID')
        assert client.get('/missing0001').headers.get('X-Request-ID')


def make_request(headers):
    scope = {
        'type': 'http',
        'method': 'POST',
        'path': '/api/upload',
        'headers': [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope)


class TestHelpers:
    def test_declared_oversized_body_is_rejected_early(self, monkeypatch):
        monkeypatch.setattr(config, 'MAX_UPLOAD_SIZE', 1024)

        with pytest.raises(PayloadTooLargeError):
            reject_oversized_declaration(make_request({'Content-Length': str(10 * 1024 * 1024)}))

    def test_declared_size_within_overhead_passes(self, monkeypatch):
        monkeypatch.setattr(config, 'MAX_UPLOAD_SIZE', 1024)

        reject_oversized_declaration(make_request({'Content-Length': '2048'}))
        reject_oversized_declaration(make_request({}))
        reject_oversized_declaration(make_request({'Content-Length': 'garbage'}))

    def test_content_disposition_encodes_non_ascii(self):
        assert content_disposition('report.pdf') == 'inline; filename="report.pdf"'
        assert content_disposition('résumé.pdf') == "inline; filename*=utf-8''r%C3%A9sum%C3%A9.pdf"


class TestBoundedReceive:
    @staticmethod
    def feeder(pieces):
        messages = [
            {'type': 'http.request', 'body': piece, 'more_body': True}
            for piece in pieces
        ]
        messages[-1]['more_body'] = False
        pulled = []

        async def receive():
            message = messages[len(pulled)]
            pulled.append(message)
            return message

        return receive, pulled

    @pytest.mark.asyncio
    async def test_stops_reading_past_limit(self, monkeypatch):
        monkeypatch.setattr(config, 'MAX_UPLOAD_SIZE', 10)
        receive, pulled = self.feeder([b'a' * 6, b'b' * 6, b'c' * 6, b'd' * 6])
        limited = bounded_receive(receive, limit=10)

        await limited()
        with pytest.raises(PayloadTooLargeError):
            await limited()

        assert len(pulled) == 2

    @pytest.mark.asyncio
    async def test_body_within_limit_passes_through(self):
        receive, pulled = self.feeder([b'a' * 5, b'b' * 5])
        limited = bounded_receive(receive, limit=10)

        assert (await limited())['body'] == b'aaaaa'
        assert (await limited())['more_body'] is False
        assert len(pulled) == 2
