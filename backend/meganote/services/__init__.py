"""
Meganote Backend - Services Layer
==================================

What:  Business logic between the routes (HTTP) and the database.
How:   Stateless service objects; every call receives the request-scoped
       AsyncSession. Routes get them as module-level singletons and the mail
       capability through a FastAPI dependency.

Service Inventory:
    - AccountService: registration, self-service, administration, soft delete
    - AuthService: login and session token issuance
    - PasswordResetService: one-time reset tickets
    - RecordService: notes CRUD and search
    - UniquenessGuard: pre-checks plus unique-index error translation
    - SequenceService: atomic ticket numbers
    - Query composer: filter/sort/window plans for list endpoints
    - MailService (abstract): HttpMailService, ConsoleMailService
"""
