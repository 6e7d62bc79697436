"""Entry point to run the Appointment Lifecycle API with its background sweeps."""

import os
from pathlib import Path

# Load .env file FIRST so settings pick it up
from dotenv import load_dotenv
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)
print(f"✅ Loaded environment from: {env_path}")

import uvicorn


def main():
    print("=" * 50)
    print("Starting Appointment Lifecycle API")
    print("=" * 50)
    print()
    print("- API: http://localhost:8000")
    print("- API Docs: http://localhost:8000/docs")
    print()

    uvicorn.run(
        "appointment_lifecycle.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        # One worker: the sweeps run inside the API process
        workers=1,
    )


if __name__ == "__main__":
    main()
