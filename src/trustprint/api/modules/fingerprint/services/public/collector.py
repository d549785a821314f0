import json
from collections.abc import Sequence

from trustprint.api.modules.fingerprint.exceptions import UnknownModuleError
from trustprint.api.modules.fingerprint.services.collectors import (
    BUILTIN_COLLECTORS,
    DEFAULT_COLLECTORS,
)


def build_collector_script(
    signal_header: str = "X-Data",
    client_id_header: str = "X-Sc-Ua-Rd",
    modules: Sequence[str] = DEFAULT_COLLECTORS,
    default_generate_endpoint: str = "/fingerprint/generate",
) -> str:
    """Browser-side collector exposing ``window.Trustprint``.

    Only modules with a server-side validator counterpart are accepted.
    """
    for name in modules:
        if name not in BUILTIN_COLLECTORS:
            raise UnknownModuleError("collector", name, list(BUILTIN_COLLECTORS))

    enabled_modules = json.dumps(list(modules))
    return f"""(function(global) {{
  const SIGNAL_HEADER = '{signal_header}';
  const CLIENT_ID_HEADER = '{client_id_header}';
  const ENABLED_MODULES = {enabled_modules};

  const registry = {{
    screen: {{
      id: 'screen',
      async getInfo() {{
        if (!global.screen) return {{}};
        return {{
          width: screen.width,
          height: screen.height,
          availWidth: screen.availWidth,
          availHeight: screen.availHeight,
          devicePixelRatio: global.devicePixelRatio
        }};
      }}
    }},
    webgl: {{
      id: 'webgl',
      gl: null,
      async init() {{
        try {{
          this.gl = document.createElement('canvas').getContext('webgl');
        }} catch (_) {{
          this.gl = null;
        }}
      }},
      async getInfo() {{
        const gl = this.gl;
        if (!gl) return {{}};
        const dbg = gl.getExtension('WEBGL_debug_renderer_info');
        if (!dbg) return {{}};
        return {{
          renderer: gl.getParameter(dbg.UNMASKED_RENDERER_WEBGL),
          vendor: gl.getParameter(dbg.UNMASKED_VENDOR_WEBGL)
        }};
      }}
    }}
  }};

  const modules = ENABLED_MODULES.map((id) => registry[id]).filter(Boolean);
  let initPromise = null;
  let clientId = null;

  function init() {{
    if (!initPromise) {{
      initPromise = Promise.all(
        modules.map((m) => (m.init ? m.init().catch(() => null) : null))
      );
    }}
    return initPromise;
  }}

  function toBase64(text) {{
    const bytes = new TextEncoder().encode(text);
    let binary = '';
    bytes.forEach((b) => {{ binary += String.fromCharCode(b); }});
    return btoa(binary);
  }}

  async function collect() {{
    await init();
    return Promise.all(
      modules.map(async (m) => {{
        let info = {{}};
        try {{
          info = (await m.getInfo()) || {{}};
        }} catch (_) {{
          info = {{}};
        }}
        return Object.assign({{}}, info, {{ id: m.id }});
      }})
    );
  }}

  async function headers() {{
    const result = {{}};
    result[SIGNAL_HEADER] = toBase64(JSON.stringify(await collect()));
    if (clientId) {{
      result[CLIENT_ID_HEADER] = toBase64(clientId);
    }}
    return result;
  }}

  async function fingerprintFetch(url, init) {{
    const options = Object.assign({{}}, init || {{}});
    options.headers = Object.assign({{}}, options.headers || {{}}, await headers());
    return fetch(url, options);
  }}

  async function generate(endpoint) {{
    const response = await fingerprintFetch(endpoint || '{default_generate_endpoint}', {{
      method: 'GET',
      credentials: 'include'
    }});
    if (!response.ok) {{
      throw new Error('Request failed: ' + response.status);
    }}
    return response.json();
  }}

  global.Trustprint = {{
    init,
    collect,
    headers,
    fetch: fingerprintFetch,
    generate,
    setClientId(value) {{ clientId = value || null; }}
  }};
}})(window);
"""


__all__ = ("build_collector_script",)
