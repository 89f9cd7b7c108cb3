from asyfolder import logger
from asyfolder._version import __version__
from asyfolder.unicomm.common.target import UniTarget
from asyfolder.unicomm.common.connection import UniConnection
from asyfolder.unicomm.server import UniServer
import asyncio
import datetime
import email.utils
import h11

SERVER_IDENT = " ".join(
    [f"asyfolder/{__version__}", h11.PRODUCT_ID]
).encode("ascii")


def format_date_time(dt=None):
    """Generate a RFC 7231 / RFC 9110 IMF-fixdate string"""
    if dt is None:
        dt = datetime.datetime.now(datetime.timezone.utc)
    return email.utils.format_datetime(dt, usegmt=True)


class HTTPConnectionWrapper:
    def __init__(self, client_id, stream:UniConnection, log_callback=None):
        self.log_callback = log_callback
        self.client_id = client_id
        self.stream = stream
        self.conn = h11.Connection(h11.SERVER)

    async def debug(self, *args):
        msg = [str(x) for x in args]
        msg = ' '.join(msg)
        if self.log_callback is not None:
            await self.log_callback(msg)

    async def send(self, event):
        assert type(event) is not h11.ConnectionClosed
        data = self.conn.send(event)
        try:
            await self.stream.write(data)
        except BaseException:
            # the connection is unusable after a failed write
            self.conn.send_failed()
            raise

    async def _read_from_peer(self):
        if self.conn.they_are_waiting_for_100_continue:
            await self.debug("Sending 100 Continue")
            go_ahead = h11.InformationalResponse(
                status_code=100, headers=self.basic_headers()
            )
            await self.send(go_ahead)
        try:
            data = await self.stream.read_one()
        except Exception as exc:
            await self.debug('[%s] Error reading from peer: %s' % (self.client_id, exc))
            # They've stopped listening. Not much we can do about it here.
            data = b""
        self.conn.receive_data(data)

    async def next_event(self):
        while True:
            event = self.conn.next_event()
            if event is h11.NEED_DATA:
                await self._read_from_peer()
                continue
            await self.debug('[%s] Event: %s' % (self.client_id, type(event).__name__))
            return event

    async def shutdown_and_clean_up(self):
        try:
            await self.stream.close()
        except Exception as exc:
            await self.debug('[%s] Error closing connection: %s' % (self.client_id, exc))

    def basic_headers(self):
        # HTTP requires these headers in all responses
        return [
            ("Date", format_date_time().encode("ascii")),
            ("Server", SERVER_IDENT),
        ]


class HTTPServerHandler:
    """
    Base request handler. Requests are dispatched to `do_<METHOD>` coroutines,
    methods without one get 405.
    """

    def __init__(self, print_cb=None):
        self._wrapper:HTTPConnectionWrapper = None
        self.print_cb = print_cb
        self.status_code = None

    async def print(self, msg=''):
        if self.print_cb is None:
            return
        await self.print_cb(msg)

    def basic_headers(self):
        return [
            ("Date", format_date_time().encode("ascii")),
            ("Server", SERVER_IDENT),
        ]

    def response_started(self):
        return self._wrapper.conn.our_state is not h11.SEND_RESPONSE

    async def _process_request(self, wrapper:HTTPConnectionWrapper, request:h11.Request):
        self._wrapper = wrapper
        self.status_code = None
        method = request.method.decode("ascii")
        target = request.target.decode("ascii", errors="replace")
        func = getattr(self, f"do_{method}", None)
        try:
            if func is None:
                await self.send_response(405, b"Method Not Allowed", content_type=b"text/plain; charset=utf-8")
            else:
                await func(request)
            if self.response_started() is False:
                raise Exception('Handler for %s %s did not respond' % (method, target))
        except Exception:
            logger.exception('[%s] Error handling %s %s' % (wrapper.client_id, method, target))
            if self.response_started() is True:
                # headers already went out, all we can do is drop the connection
                raise
            await self.send_response(500, b"Internal Server Error", content_type=b"text/plain; charset=utf-8")
        finally:
            await self.print('[ACCESS] %s "%s %s" %s' % (wrapper.stream.get_peer(), method, target, self.status_code))

    async def send_headers(self, status_code, headers):
        self.status_code = status_code
        await self._wrapper.send(h11.Response(status_code=status_code, headers=headers))

    async def send_response(self, status_code, body=b"", content_type=None, headers=None, head_only=False):
        """Send a complete response with an in-memory body."""
        all_headers = self.basic_headers()
        if content_type is not None:
            all_headers.append(("Content-Type", content_type))
        all_headers.append(("Content-Length", str(len(body)).encode("ascii")))
        if headers is not None:
            all_headers.extend(headers)
        await self.send_headers(status_code, all_headers)
        if body and head_only is False:
            await self._wrapper.send(h11.Data(data=body))
        await self._wrapper.send(h11.EndOfMessage())


class HTTPServer:
    def __init__(self, client_handler, target:UniTarget, log_callback=None):
        self.log_callback = log_callback
        self.target = target
        self.client_handler = client_handler

        self.clients = {}
        self.id_counter = 0
        self.server = None
        self.__main_task = None
        self.started_evt = asyncio.Event()

    async def debug(self, *args):
        msg = [str(x) for x in args]
        msg = ' '.join(msg)
        if self.log_callback is not None:
            await self.log_callback(msg)

    @property
    def port(self):
        if self.server is None:
            return None
        return self.server.get_bound_port()

    async def __aenter__(self):
        self.__main_task = asyncio.create_task(self.serve())
        started = asyncio.create_task(self.started_evt.wait())
        await asyncio.wait([self.__main_task, started], return_when=asyncio.FIRST_COMPLETED)
        if not self.started_evt.is_set():
            started.cancel()
            # serve() ended before binding, surface its error
            self.__main_task.result()
            raise Exception('Server stopped before it started listening')
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.terminate()

    async def terminate(self):
        if self.__main_task is not None:
            self.__main_task.cancel()
        for task in list(self.clients.values()):
            task.cancel()
        self.clients = {}
        if self.server is not None:
            await self.server.close()

    async def __send_bad_request(self, wrapper:HTTPConnectionWrapper, exc:h11.RemoteProtocolError):
        if wrapper.conn.our_state not in (h11.IDLE, h11.SEND_RESPONSE):
            return
        body = b"Bad Request"
        headers = wrapper.basic_headers()
        headers.extend([
            ("Content-Type", b"text/plain; charset=utf-8"),
            ("Content-Length", str(len(body)).encode("ascii")),
            ("Connection", b"close"),
        ])
        try:
            await wrapper.send(h11.Response(status_code=exc.error_status_hint, headers=headers))
            await wrapper.send(h11.Data(data=body))
            await wrapper.send(h11.EndOfMessage())
        except Exception as e:
            await self.debug('[%s] Failed to send error response: %s' % (wrapper.client_id, e))

    async def __handle_connection(self, client_id, connection:UniConnection):
        wrapper = HTTPConnectionWrapper(client_id, connection, log_callback=self.log_callback)
        try:
            handler = self.client_handler()
            await self.debug('Server: New client %s connected with id %s' % (connection.get_peer(), client_id))
            while True:
                conn = wrapper.conn
                if conn.our_state in (h11.MUST_CLOSE, h11.CLOSED, h11.ERROR):
                    break
                if conn.their_state in (h11.CLOSED, h11.ERROR):
                    break
                if conn.states == {h11.CLIENT: h11.DONE, h11.SERVER: h11.DONE}:
                    conn.start_next_cycle()
                    continue

                try:
                    event = await wrapper.next_event()
                except h11.RemoteProtocolError as exc:
                    await self.debug('[%s] Protocol error: %r' % (client_id, exc))
                    await self.__send_bad_request(wrapper, exc)
                    break

                if type(event) is h11.Request:
                    await handler._process_request(wrapper, event)
                    continue
                if type(event) is h11.ConnectionClosed:
                    break
                if type(event) in (h11.Data, h11.EndOfMessage) and conn.our_state is h11.DONE:
                    # remainder of a request body the handler did not consume
                    continue
                await self.debug('[%s] Server: unexpected event %s in states %s' % (client_id, type(event), conn.states))
                break
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self.debug('[%s] Connection aborted: %r' % (client_id, e))
        finally:
            await wrapper.shutdown_and_clean_up()
            self.clients.pop(client_id, None)
            await self.debug('[%s] Connection closed' % client_id)

    async def serve(self):
        self.server = UniServer(self.target)
        _, err = await self.server.start()
        if err is not None:
            raise err
        self.started_evt.set()
        async for connection in self.server.serve():
            client_id = self.id_counter
            self.id_counter += 1
            self.clients[client_id] = asyncio.create_task(self.__handle_connection(client_id, connection))
