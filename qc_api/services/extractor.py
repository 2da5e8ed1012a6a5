"""
Metadata Extractor - finds image URLs in an upstream qcMedia document.

The upstream payload has no fixed schema: images can sit at any depth, inside
objects or arrays. Every object carrying a string `image` property contributes
one URL, in depth-first document order.
"""
from typing import Any, List


def extract_image_urls(document: Any) -> List[str]:
    """
    Collect every `image` string under `document["data"]`.

    Returns an empty list when the root or its `data` field is not an object.
    Duplicates are kept; order follows a depth-first walk in key / array order.
    """
    if not isinstance(document, dict):
        return []
    root = document.get("data")
    if not isinstance(root, dict):
        return []

    urls: List[str] = []
    # Explicit stack instead of recursion: documents of any depth are safe.
    # Children are pushed in reverse so they pop in document order.
    stack: List[Any] = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            image = node.get("image")
            if isinstance(image, str) and image:
                urls.append(image)
            children = node.values()
        elif isinstance(node, list):
            children = node
        else:
            continue

        for child in reversed(list(children)):
            if isinstance(child, (dict, list)):
                stack.append(child)

    return urls
