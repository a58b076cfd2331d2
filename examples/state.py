# 订阅遥测并打印，Ctrl+C 退出
import asyncio
import json

from tello_node import TelloNode, TelloNodeError


async def main():
    async with TelloNode(TelloNode.default_config()) as tello:
        try:
            await tello.command()
            await tello.state(lambda state: print("Drone state is:", json.dumps(state)))
            await asyncio.Event().wait()
        except TelloNodeError as e:
            print(f"Error communicating with Tello:\n{e!r}")

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
