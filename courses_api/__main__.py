"""Run the API with uvicorn: `python -m courses_api`."""

import os

import uvicorn


def main():
    uvicorn.run(
        "courses_api.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "3000")),
    )


if __name__ == "__main__":
    main()
