#!/usr/bin/env python3
"""
Print the container image tag for the next deployment.

The tag is a digest of everything baked into the Lambda image, so Pulumi only
rolls the functions when the code or dependencies actually change.
"""

import hashlib
import os

ROOT = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..")

IMAGE_FILES = ["Dockerfile", "pyproject.toml", "main.py", "authorizer.py"]
IMAGE_PACKAGES = ["handlers", "models", "services", "utils"]


def image_files():
    for name in IMAGE_FILES:
        yield os.path.join(ROOT, name)
    for package in IMAGE_PACKAGES:
        for subdir, dirs, files in os.walk(os.path.join(ROOT, package)):
            dirs.sort()
            for file in sorted(files):
                if file.endswith(".py"):
                    yield os.path.join(subdir, file)


def get_content_hash() -> str:
    digest = hashlib.sha256()
    for path in image_files():
        if not os.path.exists(path):
            continue
        digest.update(os.path.relpath(path, ROOT).encode())
        with open(path, "rb") as f:
            digest.update(f.read())
    return f"src-{digest.hexdigest()[:12]}"


if __name__ == "__main__":
    print(get_content_hash())
