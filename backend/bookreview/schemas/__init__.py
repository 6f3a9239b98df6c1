# Schemas package init
"""
BookReview Backend: Pydantic Schemas
=====================================

What:  API contracts. Request models carry the declarative field rules
       (bookreview.validation); response models define the `data` payloads
       wrapped by the common success envelope.
"""
