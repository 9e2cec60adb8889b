"""
Service layer over the application table, S3, SES and outbound HTTP.

Entity services hold the per-type business rules; handlers and the REST
router call them instead of touching boto3 directly.
"""
