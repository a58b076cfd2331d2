# silent=True：不输出驱动诊断日志
import asyncio
from dataclasses import replace

from tello_node import TelloNode, TelloNodeError


async def main():
    config = replace(TelloNode.default_config(), silent=True)
    async with TelloNode(config) as tello:
        try:
            print("Battery level: " + await tello.send("battery?"))
        except TelloNodeError as e:
            print(f"Error communicating with Tello:\n{e!r}")

if __name__ == "__main__":
    asyncio.run(main())
