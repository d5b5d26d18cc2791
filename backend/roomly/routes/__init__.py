"""
Roomly Backend - API Routes Package
====================================

Route Inventory:
    - auth.py:      /v1/auth      register, verify, login, logout, OAuth
    - users.py:     /v1/user      profile, password reset/change, email change
    - listings.py:  /v1/listings  listings and their galleries
    - bookings.py:  /v1/bookings  reservations
    - uploads.py:   /v1/upload, /v1/files   image upload and serving
    - health.py:    /healthcheck

Routes stay thin: parse the request, call a service, shape the response.
"""
