import html

from asyfolder.folder.listing import ListingPage, href_for
from asyfolder.folder.sizefmt import format_size

STYLE = '''
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            margin: 0;
            padding: 20px;
            background-color: #f5f5f5;
        }
        .container {
            max-width: 1000px;
            margin: 0 auto;
            background: white;
            border-radius: 8px;
            box-shadow: 0 2px 10px rgba(0,0,0,0.1);
            overflow: hidden;
        }
        .header {
            background: #2563eb;
            color: white;
            padding: 20px;
            text-align: center;
        }
        .header h1 { margin: 0; font-size: 1.6rem; }
        .path {
            background: #f8f9fa;
            padding: 15px 20px;
            border-bottom: 1px solid #dee2e6;
            font-family: monospace;
        }
        table { width: 100%; border-collapse: collapse; }
        th, td {
            text-align: left;
            padding: 10px 20px;
            border-bottom: 1px solid #dee2e6;
        }
        th { background-color: #f8f9fa; font-weight: 600; }
        tr:hover { background-color: #f8f9fa; }
        a { color: #2563eb; text-decoration: none; }
        a:hover { text-decoration: underline; }
        .upload-container {
            padding: 20px;
            background-color: #f0fdf4;
            border-top: 1px solid #dee2e6;
        }
        .upload-container h3 { margin-top: 0; }
        .footer {
            padding: 15px;
            text-align: center;
            color: #6c757d;
            font-size: 0.9rem;
        }
'''


def _breadcrumbs_html(page:ListingPage):
    parts = ['<a href="/">&#127968; Root</a>']
    crumbs = page.breadcrumbs
    for i, (name, href) in enumerate(crumbs):
        if i == len(crumbs) - 1:
            parts.append('<span>%s</span>' % html.escape(name))
        else:
            parts.append('<a href="%s">%s</a>' % (html.escape(href), html.escape(name)))
    return ' / '.join(parts)


def _upload_form_html(page:ListingPage):
    return '''
    <div class="upload-container">
        <h3>Upload files</h3>
        <form action="/upload" method="post" enctype="multipart/form-data">
            <input type="hidden" name="current_path" value="%s">
            <input type="file" name="file" multiple>
            <button type="submit">Upload</button>
        </form>
    </div>''' % html.escape(page.label)


def render_listing(page:ListingPage, uploads_enabled:bool = True) -> str:
    """Render a listing page to HTML."""
    title = 'Index of /%s' % page.label
    rows = []

    if page.parent_label is not None:
        rows.append(
            '<tr><td><a href="%s"><strong>&#128193; ../</strong></a></td><td>-</td><td>-</td><td>Directory</td></tr>'
            % html.escape(href_for(page.parent_label))
        )

    for entry in page.directories:
        rows.append(
            '<tr><td><a href="%s"><strong>&#128193; %s/</strong></a></td><td>-</td><td>%s</td><td>Directory</td></tr>' % (
                html.escape(href_for(page.child_label(entry.name))),
                html.escape(entry.name),
                _modified_html(entry.modified),
            )
        )

    for entry in page.files:
        rows.append(
            '<tr><td><a href="%s">&#128196; %s</a></td><td>%s</td><td>%s</td><td>File</td></tr>' % (
                html.escape(href_for(page.child_label(entry.name))),
                html.escape(entry.name),
                format_size(entry.size) if entry.size is not None else '-',
                _modified_html(entry.modified),
            )
        )

    upload_form = _upload_form_html(page) if uploads_enabled else ''

    return '''<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>%s</title>
    <style>%s</style>
</head>
<body>
<div class="container">
    <div class="header"><h1>%s</h1></div>
    <div class="path">%s</div>
    <table>
        <thead><tr><th>Name</th><th>Size</th><th>Modified</th><th>Type</th></tr></thead>
        <tbody>
%s
        </tbody>
    </table>%s
    <div class="footer">%d directories, %d files</div>
</div>
</body>
</html>
''' % (
        html.escape(title),
        STYLE,
        html.escape(title),
        _breadcrumbs_html(page),
        '\n'.join(rows),
        upload_form,
        len(page.directories),
        len(page.files),
    )


def _modified_html(modified):
    if modified is None:
        return '-'
    return modified.strftime('%Y-%m-%d %H:%M:%S')


def render_message(title:str, message:str) -> str:
    return '<html><head><meta charset="UTF-8"><title>%s</title></head><body><h1>%s</h1><p>%s</p></body></html>' % (
        html.escape(title), html.escape(title), html.escape(message)
    )
