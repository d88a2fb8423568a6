"""Core application components.

This module provides the foundational components for the CSR26 API:
- Database connection management via Prisma
- Application settings and configuration
- Outbound email for magic link logins
"""
