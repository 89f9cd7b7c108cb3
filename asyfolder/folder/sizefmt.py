
UNITS = ('B', 'KB', 'MB', 'GB', 'TB')


def format_size(size:int) -> str:
    """Convert a byte count to a human-readable size using base-2 units."""
    if size < 0:
        raise ValueError('Size must be non-negative, got %s' % size)

    unit_index = 0
    value = float(size)
    while value >= 1024 and unit_index < len(UNITS) - 1:
        value /= 1024
        unit_index += 1

    if unit_index == 0:
        return '%d %s' % (size, UNITS[0])
    return '%.1f %s' % (value, UNITS[unit_index])
