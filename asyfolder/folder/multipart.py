import re
import tempfile

from asyfolder.errors import MultipartError


def parse_boundary(content_type):
    """
    Extract the boundary from a multipart/form-data Content-Type value.

    Raises:
        MultipartError: Not multipart/form-data, or no boundary
    """
    if content_type is None or not content_type.lower().startswith('multipart/form-data'):
        raise MultipartError('Only multipart/form-data uploads are supported')
    boundary_match = re.search(r'boundary=("[^"]+"|[^;\s]+)', content_type, re.IGNORECASE)
    if not boundary_match:
        raise MultipartError('Missing boundary in Content-Type')
    return boundary_match.group(1).strip('"').encode('latin-1')


def _header_param(value, param):
    """Value of `param` in a header like `form-data; name="x"; filename="y"`."""
    m = re.search(r'(?:^|;)\s*%s\s*=\s*"((?:[^"\\]|\\.)*)"' % param, value, re.IGNORECASE)
    if m:
        return re.sub(r'\\(.)', r'\1', m.group(1))
    m = re.search(r'(?:^|;)\s*%s\s*=\s*([^;\s]+)' % param, value, re.IGNORECASE)
    if m:
        return m.group(1)
    return None


class MultipartPart:
    """
    One part of a multipart body.

    File parts (the ones with a filename) keep their payload in a spooled
    temporary file, text fields in memory.
    """

    def __init__(self, headers, spool_size):
        disposition = headers.get('content-disposition', '')
        self.name = _header_param(disposition, 'name')
        self.filename = _header_param(disposition, 'filename')
        self.content_type = headers.get('content-type')
        self.size = 0
        self.complete = False
        if self.filename is not None:
            self._data = tempfile.SpooledTemporaryFile(max_size=spool_size)
        else:
            self._data = bytearray()

    @property
    def is_file(self):
        return self.filename is not None

    def write(self, data):
        if self.is_file:
            self._data.write(data)
        else:
            self._data += data
        self.size += len(data)

    def text(self, encoding='utf-8'):
        if self.is_file:
            self._data.seek(0)
            return self._data.read().decode(encoding)
        return bytes(self._data).decode(encoding)

    def open(self):
        """Readable file object positioned at the start of the payload."""
        if not self.is_file:
            raise ValueError('Part %r is not a file part' % self.name)
        self._data.seek(0)
        return self._data

    def close(self):
        if self.is_file:
            self._data.close()

    def __repr__(self):
        return 'MultipartPart(name=%r, filename=%r, size=%s, complete=%s)' % (self.name, self.filename, self.size, self.complete)


class MultipartStreamProcessor:
    """
    Incremental multipart/form-data parser.

    Chunks are fed as they arrive; boundaries split across chunks are
    handled by keeping a tail of the buffer until more data shows up.
    """

    def __init__(self, boundary:bytes, max_field_size=64*1024, max_header_size=8192, spool_size=1024*1024):
        self.boundary_bytes = b'--' + boundary
        self.boundary_with_crlf = b'\r\n' + self.boundary_bytes
        self.max_field_size = max_field_size
        self.max_header_size = max_header_size
        self.spool_size = spool_size

        # 'looking_for_boundary', 'after_boundary', 'reading_headers', 'reading_part_data', 'done'
        self.state = 'looking_for_boundary'
        self.buffer = b''
        self.current_part = None
        self.parts = []

    def process_chunk(self, chunk):
        """Feed a chunk of body data."""
        self.buffer += chunk
        while True:
            if self.state == 'looking_for_boundary':
                if not self._process_boundary_search():
                    break
            elif self.state == 'after_boundary':
                if not self._process_after_boundary():
                    break
            elif self.state == 'reading_headers':
                if not self._process_headers():
                    break
            elif self.state == 'reading_part_data':
                if not self._process_part_data():
                    break
            else:
                # epilogue is ignored
                self.buffer = b''
                break

    def finalize(self):
        """
        Signal the end of the body.

        A part still being read is kept but stays marked incomplete.
        """
        if self.state == 'reading_part_data' and self.current_part is not None:
            self.current_part = None
        self.buffer = b''
        self.state = 'done'
        return self.parts

    def cleanup(self):
        for part in self.parts:
            part.close()

    def _process_boundary_search(self):
        boundary_pos = self.buffer.find(self.boundary_bytes)
        if boundary_pos == -1:
            # keep a possible partial boundary
            keep_size = len(self.boundary_bytes) - 1
            if len(self.buffer) > keep_size:
                self.buffer = self.buffer[-keep_size:]
            return False
        self.buffer = self.buffer[boundary_pos + len(self.boundary_bytes):]
        self.state = 'after_boundary'
        return True

    def _process_after_boundary(self):
        if len(self.buffer) < 2:
            return False
        if self.buffer.startswith(b'--'):
            self.state = 'done'
            return True
        line_end = self.buffer.find(b'\r\n')
        if line_end == -1:
            if len(self.buffer) > 1024:
                raise MultipartError('Malformed multipart boundary line')
            return False
        # transport padding between the boundary and CRLF
        if self.buffer[:line_end].strip(b' \t') != b'':
            raise MultipartError('Malformed multipart boundary line')
        self.buffer = self.buffer[line_end + 2:]
        self.state = 'reading_headers'
        return True

    def _process_headers(self):
        if self.buffer.startswith(b'\r\n'):
            header_section = b''
            self.buffer = self.buffer[2:]
        else:
            header_end = self.buffer.find(b'\r\n\r\n')
            if header_end == -1:
                if len(self.buffer) > self.max_header_size:
                    raise MultipartError('Multipart headers too long or malformed (missing header terminator)')
                return False
            header_section = self.buffer[:header_end]
            self.buffer = self.buffer[header_end + 4:]

        if len(header_section) > self.max_header_size:
            raise MultipartError('Multipart part headers too long')

        try:
            headers_text = header_section.decode('utf-8')
        except UnicodeDecodeError:
            headers_text = header_section.decode('latin-1')

        headers = {}
        for line in headers_text.split('\r\n'):
            if not line.strip():
                continue
            if ':' not in line:
                raise MultipartError('Malformed multipart header line')
            key, value = line.split(':', 1)
            headers[key.strip().lower()] = value.strip()

        self.current_part = MultipartPart(headers, self.spool_size)
        self.parts.append(self.current_part)
        self.state = 'reading_part_data'
        return True

    def _process_part_data(self):
        next_boundary_pos = self.buffer.find(self.boundary_with_crlf)
        if next_boundary_pos == -1:
            # hold back enough to detect a boundary split across chunks
            write_size = len(self.buffer) - len(self.boundary_with_crlf) + 1
            if write_size > 0:
                self._write_part_data(self.buffer[:write_size])
                self.buffer = self.buffer[write_size:]
            return False

        self._write_part_data(self.buffer[:next_boundary_pos])
        # leave the boundary itself for the boundary search
        self.buffer = self.buffer[next_boundary_pos + 2:]
        self.current_part.complete = True
        self.current_part = None
        self.state = 'looking_for_boundary'
        return True

    def _write_part_data(self, data):
        if not data:
            return
        part = self.current_part
        if not part.is_file and part.size + len(data) > self.max_field_size:
            raise MultipartError('Form field %r exceeds %s bytes' % (part.name, self.max_field_size))
        part.write(data)
