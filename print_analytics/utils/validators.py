import re
from typing import Any, Dict, List, Optional

from print_analytics.utils.exceptions import ValidationError

# Roughly 5MB of binary once base64 encoded
MAX_IMAGE_LENGTH = 7_000_000

SUPPORTED_IMAGE_FORMATS = ('png', 'jpg', 'jpeg', 'gif', 'webp')

def validate_image(image: Optional[str]) -> Optional[str]:
    """Validate an optional embedded image (data URL or bare base64)"""
    if image is None or image == '':
        return None
    if len(image) > MAX_IMAGE_LENGTH:
        raise ValueError(f'Image exceeds maximum size of {MAX_IMAGE_LENGTH} characters')
    if image.startswith('data:'):
        match = re.match(r'^data:image/([a-zA-Z0-9.+-]+);base64,', image)
        if not match or match.group(1).lower() not in SUPPORTED_IMAGE_FORMATS:
            raise ValueError(f"Image must be one of: {', '.join(SUPPORTED_IMAGE_FORMATS)}")
    return image

def validate_sort(sort_by: str, sort_order: str, allowed_fields: List[str]) -> None:
    """Validate sort key and direction against a collection whitelist"""
    errors = []
    if sort_by not in allowed_fields:
        errors.append({
            'field': 'sortBy',
            'message': f"Unsupported sort field '{sort_by}'. Allowed: {', '.join(allowed_fields)}"
        })
    if sort_order not in ('asc', 'desc'):
        errors.append({'field': 'sortOrder', 'message': "sortOrder must be 'asc' or 'desc'"})
    if errors:
        raise ValidationError("Validation failed", errors)

def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten pydantic error dicts into field-level descriptors"""
    details = []
    for error in errors:
        location = [str(part) for part in error.get('loc', ()) if part not in ('body', 'query', 'path')]
        details.append({
            'field': '.'.join(location) or None,
            'message': error.get('msg', 'Invalid value'),
            'type': error.get('type'),
        })
    return details
