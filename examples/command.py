# 显式 connect(auto_command=False) + 手动握手
import asyncio

from tello_node import TelloNode, TelloNodeError


async def main():
    async with TelloNode(TelloNode.default_config()) as tello:
        try:
            await tello.connect(auto_command=False)
            await tello.command()
            print("Battery level: " + await tello.send("battery?"))
        except TelloNodeError as e:
            print(f"Error communicating with Tello:\n{e!r}")

if __name__ == "__main__":
    asyncio.run(main())
