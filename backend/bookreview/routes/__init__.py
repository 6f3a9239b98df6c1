"""
BookReview Backend: API Routes Package
========================================

Route Inventory:
    - health.py:  GET  /                           (health check)
    - auth.py:    POST /auth/register, /auth/login
    - users.py:   GET  /users/me                   (authenticated)
    - books.py:   GET  /books, /books/{id}
                  POST /books, PUT/DELETE /books/{id} (admin)
                  GET  /books/{id}/reviews
                  POST /books/{id}/reviews         (authenticated)

Routes stay thin: resolve dependencies, call a service, wrap the result in
ApiResponse. They never build error responses themselves; every failure is
raised and handled by the exception handlers in main.py.
"""
