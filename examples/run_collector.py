"""Run a local stats collector that prints every frame it receives."""

import asyncio
import json
import sys

import websockets


async def handler(websocket):
    print(f"Client connected: {websocket.remote_address}")
    try:
        async for message in websocket:
            print(f"Received: {message}")
            await websocket.send(json.dumps({"ack": True}))
    except websockets.ConnectionClosed:
        pass
    print("Client disconnected")


async def main(port: int):
    async with websockets.serve(handler, "localhost", port):
        print(f"Collector listening on ws://localhost:{port}")
        await asyncio.Future()


if __name__ == "__main__":
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8766
    try:
        asyncio.run(main(port))
    except KeyboardInterrupt:
        print("\nShutting down...")
