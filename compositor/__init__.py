"""
Caption compositor package.

Modules:
- core: batch orchestration (validate, license, pools, loop, persist)
- license: license gate and per-process license session
- assets: asset pool resolution (remote folder or local override)
- render: host transformation segments and URL construction
- host: image host upload / rendered fetch client
- drive: cloud drive folder listing and file download
- sheets: spreadsheet catalogue, license table and promo cells
- messaging: promo text and banner parsing
- cursor: persisted background / element rotation cursor
- config: installation paths and config.json loading
"""
