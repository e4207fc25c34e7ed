"""
Meganote Backend - API Routes Package
======================================

Route Inventory:
    - auth.py:     /auth, /auth/register, /auth/forgotpassword,
                   /auth/resetpassword/{token}             (public)
    - account.py:  /account/{id}                           (session)
    - users.py:    /users, /users/all, /users/{id}         (session)
    - notes.py:    /notes, /notes/all, /notes/{id}         (session)
    - health.py:   /health                                 (public)

Routes stay thin: parse the request, call a service, shape the response.
"""
