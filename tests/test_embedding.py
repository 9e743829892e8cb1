import numpy as np
import pytest
import requests

from face_verification.recognition.embedding import (
    EMBEDDING_SIZE,
    ImageDecodeError,
    embedding_from_box,
    embedding_from_image,
    extract_image_features,
    fallback_embedding,
    load_image,
    normalize_embedding,
    seeded_fallback_embedding,
)


class TestBoxEmbedding:
    def test_same_box_yields_identical_vectors(self):
        first = embedding_from_box(120.5, 80.25, 60.0, 80.0)
        second = embedding_from_box(120.5, 80.25, 60.0, 80.0)
        assert np.array_equal(first, second)

    def test_different_geometry_changes_vector(self):
        first = embedding_from_box(120.0, 80.0, 60.0, 80.0)
        second = embedding_from_box(121.0, 80.0, 60.0, 80.0)
        assert not np.allclose(first, second)

    def test_is_unit_length(self):
        embedding = embedding_from_box(10.0, 20.0, 55.0, 75.0)
        assert embedding.shape == (EMBEDDING_SIZE,)
        assert np.linalg.norm(embedding) == pytest.approx(1.0)

    def test_zero_height_does_not_raise(self):
        embedding = embedding_from_box(10.0, 20.0, 55.0, 0.0)
        assert np.all(np.isfinite(embedding))

    def test_quarter_biases(self):
        # Seed 0 makes the base term sin(i) * cos(0) = sin(i)
        raw = np.sin(np.arange(EMBEDDING_SIZE, dtype=np.float64))
        width, height = 2.0, 1.0
        x, y = -1.0, -2.0
        raw[:32] += (width / height) * 0.1
        raw[32:64] += (width * height / 10000) * 0.1
        raw[64:96] += ((x + width / 2) / 1000) * 0.1
        raw[96:] += ((y + height / 2) / 1000) * 0.1

        expected = raw / np.linalg.norm(raw)
        assert np.allclose(embedding_from_box(x, y, width, height), expected)


class TestImageFeatures:
    def test_uniform_red_histogram(self):
        image = np.zeros((128, 128, 3), dtype=np.uint8)
        image[:, :, 2] = 255

        features = extract_image_features(image)

        assert features[7] == pytest.approx(1.0)       # R bin 7
        assert features[8] == pytest.approx(1.0)       # G bin 0
        assert features[16] == pytest.approx(1.0)      # B bin 0
        assert features[:24].sum() == pytest.approx(3.0)

    def test_uniform_image_has_no_edges(self):
        image = np.full((128, 128, 3), 100, dtype=np.uint8)
        features = extract_image_features(image)
        assert np.all(features[24:56] == 0)

    def test_spatial_grid_uses_luma(self):
        image = np.full((128, 128, 3), 100, dtype=np.uint8)
        features = extract_image_features(image)
        assert np.allclose(features[56:120], 100 / 255)

    def test_horizontal_step_is_sampled_as_edge(self):
        image = np.zeros((128, 128, 3), dtype=np.uint8)
        image[64:, :, :] = 255

        features = extract_image_features(image)

        # Sample 16 falls on row 64, right at the step
        assert features[24 + 16] == pytest.approx(1.0)
        assert features[24:56].max() <= 1.0

    def test_padded_to_fixed_size(self, face_image):
        features = extract_image_features(face_image)
        assert features.shape == (EMBEDDING_SIZE,)
        assert np.all(features[120:] == 0)

    def test_embedding_is_unit_length(self, face_image):
        embedding = embedding_from_image(face_image)
        assert np.linalg.norm(embedding) == pytest.approx(1.0)

    def test_resize_makes_features_size_independent(self):
        small = np.full((32, 32, 3), 50, dtype=np.uint8)
        large = np.full((300, 200, 3), 50, dtype=np.uint8)
        assert np.allclose(extract_image_features(small), extract_image_features(large))


class TestLoadImage:
    def test_data_url(self, face_image, face_data_url):
        image = load_image(face_data_url)
        assert image.shape == face_image.shape
        assert np.array_equal(image, face_image)

    def test_file_path(self, tmp_path, face_image, face_data_url):
        import base64
        path = tmp_path / 'alice.png'
        path.write_bytes(base64.b64decode(face_data_url.split(',', 1)[1]))

        assert np.array_equal(load_image(str(path)), face_image)

    def test_http_url(self, monkeypatch, face_image, face_data_url):
        import base64
        payload = base64.b64decode(face_data_url.split(',', 1)[1])
        calls = []

        class FakeResponse:
            content = payload

            def raise_for_status(self):
                pass

        def fake_get(url, timeout):
            calls.append((url, timeout))
            return FakeResponse()

        monkeypatch.setattr(requests, 'get', fake_get)

        image = load_image('http://backend/photos/1.png', timeout=3)

        assert np.array_equal(image, face_image)
        assert calls == [('http://backend/photos/1.png', 3)]

    def test_http_error_is_decode_error(self, monkeypatch):
        def fake_get(url, timeout):
            raise requests.exceptions.ConnectionError('unreachable')

        monkeypatch.setattr(requests, 'get', fake_get)

        with pytest.raises(ImageDecodeError):
            load_image('https://backend/photos/1.png')

    def test_grayscale_and_bgra_frames(self):
        gray = np.full((20, 30), 10, dtype=np.uint8)
        bgra = np.full((20, 30, 4), 10, dtype=np.uint8)

        assert load_image(gray).shape == (20, 30, 3)
        assert load_image(bgra).shape == (20, 30, 3)

    @pytest.mark.parametrize('source', [
        'data:image/png;base64,bm90IGFuIGltYWdl',
        'data:image/png;base64',
        b'not an image',
        '/nonexistent/photo.png',
        '',
        np.zeros((0, 0, 3), dtype=np.uint8),
    ])
    def test_invalid_sources(self, source):
        with pytest.raises(ImageDecodeError):
            load_image(source)


class TestNormalizationAndFallback:
    def test_zero_vector_left_unchanged(self):
        zeros = np.zeros(EMBEDDING_SIZE)
        assert np.array_equal(normalize_embedding(zeros), zeros)

    def test_fallback_range(self):
        embedding = fallback_embedding(np.random.default_rng(1))
        assert embedding.shape == (EMBEDDING_SIZE,)
        assert embedding.min() >= -0.5
        assert embedding.max() < 0.5

    def test_fallback_is_random(self):
        assert not np.array_equal(fallback_embedding(), fallback_embedding())

    def test_seeded_fallback_is_stable_per_key(self):
        assert np.array_equal(seeded_fallback_embedding('s-1'), seeded_fallback_embedding('s-1'))
        assert not np.array_equal(seeded_fallback_embedding('s-1'), seeded_fallback_embedding('s-2'))
