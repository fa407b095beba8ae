import os
import uuid
from io import BytesIO

import requests
from PIL import Image


def save_upload(file_storage, upload_folder):
    """Save an uploaded file under a random name and return its absolute path."""
    ext = os.path.splitext(file_storage.filename or "")[1].lower() or ".pdf"
    filename = f"pdfFile-{uuid.uuid4().hex}{ext}"
    filepath = os.path.join(upload_folder, filename)
    file_storage.save(filepath)
    return filepath


def is_remote(source):
    return str(source).startswith(("http://", "https://"))


def load_image(source, timeout=60):
    """Open an image from a URL or a local path."""
    if is_remote(source):
        resp = requests.get(source, timeout=timeout)
        resp.raise_for_status()
        img = Image.open(BytesIO(resp.content))
    else:
        img = Image.open(source)
    img.load()
    return img


def prepare_for_ocr(img, max_dim=4096):
    """Grayscale the image and cap its largest side at max_dim."""
    if img.mode not in ("L", "RGB"):
        img = img.convert("RGB")
    if max(img.size) > max_dim:
        ratio = max_dim / max(img.size)
        new_size = (int(img.width * ratio), int(img.height * ratio))
        img = img.resize(new_size, Image.LANCZOS)
    return img.convert("L")


def download_file(url, dest_path, timeout=60):
    """Stream a remote file to dest_path; a partial file is removed on failure."""
    try:
        with requests.get(url, stream=True, timeout=timeout) as resp:
            resp.raise_for_status()
            with open(dest_path, "wb") as f:
                for chunk in resp.iter_content(chunk_size=64 * 1024):
                    if chunk:
                        f.write(chunk)
    except Exception:
        if os.path.exists(dest_path):
            os.remove(dest_path)
        raise
    return dest_path
