"""Send call stats to a local collector.

Start ``run_collector.py`` first, then stop and restart it while this
script runs to watch messages buffer and flush after reconnection.
"""

import asyncio
import logging
import random

from telemetry_uplink import ClientConfig, StatsClient

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


async def main():
    config = ClientConfig.from_dict(
        {
            "socket": {"url": "ws://localhost:8766", "reconnect_delay": 2.0},
            "heartbeat": {"interval": 5.0},
        }
    )

    async with StatsClient("example-user", config=config) as client:
        for n in range(60):
            sent = client.send(
                {
                    "msg": "CALL_RTP_STATS",
                    "seq": n,
                    "jitter_ms": round(random.uniform(1, 30), 2),
                    "packet_loss": round(random.uniform(0, 0.05), 4),
                }
            )
            print(f"seq={n} sent={sent} pending={client.socket.pending}")
            await asyncio.sleep(1.0)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutting down...")
