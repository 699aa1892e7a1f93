"""Unit tests for PlantMap web route modules.

Structure:
    tests/unit/web/
    ├── test_dependencies.py           # Identity headers and admin gate
    ├── test_routes_plant.py           # Layout routes
    ├── test_routes_cycles.py          # Cycle routes
    └── test_routes_status_requests.py # Submission and review routes

Testing pattern:
    - Use FastAPI's TestClient against plantmap.web.app
    - Patch get_session and the library calls in the route module
    - Test identity requirements and domain error mapping
"""
