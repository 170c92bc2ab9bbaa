"""
Business intake applications.

- Public multi-step form and submission (public.py)
- Validation and the file-save + transaction sequence with rollback (service.py)
- Admin list/detail and the downloadable package (admin.py, package.py)
"""
