"""
Entry point to run the job expiry worker (python main.py).
"""
import asyncio

from worker.main import main as worker_main


if __name__ == "__main__":
    asyncio.run(worker_main())

