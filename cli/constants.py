"""CLI constants."""

ERROR_MESSAGES = {
    'NO_FILE': 'No file was sent.',
    'PAYLOAD_TOO_LARGE': 'File too large (limit is 100 MiB).',
    'UNSUPPORTED_TYPE': 'File type not allowed. Use an image, video, audio, PDF, text or zip file.',
    'VALIDATION_FAILED': 'File was rejected by the server.',
    'RATE_LIMITED': 'Too many uploads from this address. Please try again later.',
    'NOT_FOUND': 'File not found on server.',
    'UPLOAD_FAILED': 'Server failed to store the file. Please try again.',
    'INTERNAL_ERROR': 'Server error.',
}

STATUS_MESSAGES = {
    400: 'Bad request',
    404: 'Not found',
    429: 'Too many requests',
    500: 'Server error',
    503: 'Service unavailable',
}
