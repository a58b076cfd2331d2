# 未显式 connect：send() 内部自动绑定并握手
import asyncio

from tello_node import TelloNode, TelloNodeError


async def main():
    async with TelloNode(TelloNode.default_config()) as tello:
        try:
            print("Battery level: " + await tello.send("battery?"))
        except TelloNodeError as e:
            print(f"Error communicating with Tello:\n{e!r}")

if __name__ == "__main__":
    asyncio.run(main())
