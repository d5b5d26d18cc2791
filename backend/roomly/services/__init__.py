"""
Roomly Backend - Services Layer
================================

What:  Business logic between routes (HTTP) and the database.
How:   Stateless singletons; every database method receives the request's
       AsyncSession, so the session dependency owns the transaction.

Service Inventory:
    - UserService:    accounts, activation, credentials, OAuth upsert
    - TokenService:   session token issue / revoke / resolve
    - ListingService: listing CRUD, browse with search, sort and pagination
    - ImageService:   listing gallery URLs and uploaded gallery photos
    - BookingService: reservations with server-side pricing
    - FileService:    upload validation, storage and safe serving
    - MailerService:  transactional email via Resend
    - OAuthService:   GitHub and Google authorization-code flow
"""
