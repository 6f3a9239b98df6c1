"""
BookReview Backend: Services Layer
====================================

Business logic between the routes (HTTP) and the database. Services are
stateless singletons; each method receives the request's AsyncSession and
raises bookreview.exceptions errors that the global handlers turn into
responses.

Service Inventory:
    - AuthService:   registration and login
    - BookService:   book listing (filters, sorting, pagination) and admin CRUD
    - ReviewService: per-book review listing and review creation
"""
