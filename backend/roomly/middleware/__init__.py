"""
Roomly Backend - Middleware Package
====================================

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Logging] → [Rate Limit] → [GZip] → Route

    - CORS outermost so even 429 responses carry CORS headers
    - Request ID before Logging so every access log line has an ID
    - Rate Limit inside Logging so rejected requests are still logged
"""
