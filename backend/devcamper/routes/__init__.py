"""
DevCamper Backend — API Routes Package
========================================

Route Inventory (mounted under settings.api_prefix, /api/v1):
    - auth.py:       /auth/register, /auth/login, /auth/me, /auth/logout,
                     /auth/forgotpassword, /auth/resetpassword/{token},
                     /auth/updatedetails, /auth/updatepassword
    - bootcamps.py:  /bootcamps, /bootcamps/{id}, /bootcamps/{id}/photo,
                     /bootcamps/radius/{zipcode}/{distance}
    - courses.py:    /courses, /courses/{id}, /bootcamps/{id}/courses
    - reviews.py:    /reviews, /reviews/{id}, /bootcamps/{id}/reviews
    - users.py:      /users, /users/{id} (admin only)
    - health.py:     /health (not prefixed)

Routes stay thin: read the request, call one service method, wrap the
result in the success envelope. Authorization is declared with Depends().
"""

from typing import Any, Dict

from fastapi import Request

from devcamper.services.query_builder import query_params_to_dict


async def list_query_params(request: Request) -> Dict[str, Any]:
    """Raw list parameters (filters + select/sort/page/limit) for the query builder."""
    return query_params_to_dict(request.query_params.multi_items())
