# Quick reference commands (run from repo root). These are comments only; copy/paste as needed.

# Install the project with test dependencies (includes httpx for TestClient)
# python -m pip install -e ".[test]"

# Run the full test suite (Postgres-backed tests skip unless DATABASE_URL is set)
# python -m pytest

# Run focused test files
# python -m pytest tests/test_validation.py
# python -m pytest tests/test_security_headers.py tests/test_security_auth.py
# python -m pytest tests/test_session_and_rate_limits.py tests/test_maintenance.py
# python -m pytest tests/test_auth_flow.py tests/test_password_reset_flow.py tests/test_verify_email_flow.py
# python -m pytest tests/test_jobs.py tests/test_job_routes.py tests/test_applications.py
# python -m pytest tests/test_profiles.py tests/test_profile_routes.py tests/test_storage.py
# python -m pytest tests/test_settings.py tests/test_worker.py
# DATABASE_URL=postgresql://... python -m pytest tests/test_db_integration.py

# Start the web app locally (with env vars loaded)
# python -m dotenv run -- python -m uvicorn app.api:app --reload

# Run the job expiry worker (loops every EXPIRY_CHECK_INTERVAL seconds)
# python -m dotenv run -- python -m worker.main
# WORKER_RUN_ONCE=true python -m dotenv run -- python main.py

# Create the demo candidate / recruiter / admin accounts
# python -m dotenv run -- python -m scripts.seed_demo_users

# Inspect the database
# python -m scripts.db_shell
# python -m scripts.db_shell "SELECT id,email,role,active,created_at FROM users"
# python -m scripts.db_shell "SELECT id,job_title,status,expires_at FROM job_postings ORDER BY id DESC LIMIT 5"
