import cv2
import numpy as np
import pytest

from standings_import.image_loader import find_images, load_image


def test_loads_png_as_rgb(tmp_path):
    rgb = np.zeros((6, 8, 3), dtype=np.uint8)
    rgb[..., 0] = 255  # red
    path = tmp_path / 'red.png'
    cv2.imwrite(str(path), cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))

    image = load_image(str(path))
    assert image.shape == (6, 8, 3)
    assert (image[..., 0] == 255).all()
    assert (image[..., 2] == 0).all()


def test_keeps_alpha_channel(tmp_path):
    rgba = np.full((4, 4, 4), 200, dtype=np.uint8)
    rgba[..., 3] = 50
    path = tmp_path / 'alpha.png'
    cv2.imwrite(str(path), cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA))

    image = load_image(str(path))
    assert image.shape == (4, 4, 4)
    assert (image[..., 3] == 50).all()


def test_grayscale_file_becomes_rgb(tmp_path):
    path = tmp_path / 'gray.png'
    cv2.imwrite(str(path), np.full((3, 5), 90, dtype=np.uint8))
    assert load_image(str(path)).shape == (3, 5, 3)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(str(tmp_path / 'missing.png'))


def test_undecodable_file(tmp_path):
    path = tmp_path / 'broken.png'
    path.write_bytes(b'not an image')
    with pytest.raises(IOError):
        load_image(str(path))


def test_find_images(tmp_path):
    for name in ('b.PNG', 'a.jpg', 'c.heic', 'notes.txt'):
        (tmp_path / name).write_bytes(b'')
    assert [p.name for p in find_images(str(tmp_path))] == ['a.jpg', 'b.PNG', 'c.heic']

    with pytest.raises(NotADirectoryError):
        find_images(str(tmp_path / 'nope'))
