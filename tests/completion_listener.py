"""
A minimal HTTP listener standing in for llama-server's /completion endpoint.
"""
import asyncio
import json
from contextlib import asynccontextmanager


@asynccontextmanager
async def completion_listener(model: str, delay: float = 0.0, content: str = ""):
    """
    Serve /completion on 127.0.0.1, answering every request after delay seconds.

    Yields the port. A connection closed before the request arrives is ignored,
    so bare TCP checks work against it too.
    """
    async def handle(reader, writer):
        try:
            headers = await reader.readuntil(b"\r\n\r\n")
            length = 0
            for line in headers.decode("latin-1").split("\r\n"):
                name, _, value = line.partition(":")
                if name.strip().lower() == "content-length":
                    length = int(value.strip())
            if length:
                await reader.readexactly(length)

            await asyncio.sleep(delay)
            body = json.dumps({"content": content, "model": model, "stop": True}).encode()
            writer.write(
                b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\n"
                + f"Content-Length: {len(body)}\r\nConnection: close\r\n\r\n".encode()
                + body
            )
            await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    try:
        yield server.sockets[0].getsockname()[1]
    finally:
        server.close()
        await server.wait_closed()
