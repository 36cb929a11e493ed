"""
Sweeper Entry Point
Runs the periodic inactivity threshold sweep
"""
from dotenv import load_dotenv
load_dotenv()

from app.inactivity.scheduler import start_sweeper

if __name__ == "__main__":
    start_sweeper()
