"""
RabbitMQ Consumer Entry Point
Starts the event consumer for motion sensor events and check-in replies
"""
from dotenv import load_dotenv
load_dotenv()

from app.messaging.consumer import start_consumer

if __name__ == "__main__":
    start_consumer()
