# Controllers package init
"""
Crude — Controllers
=====================

What:  Request pipelines that turn an Entity into browsable, editable pages.

Modules:
    - pipeline.py:    RequestContext and the ordered step chain
    - crud.py:        CrudController, the seven CRUD pipelines
    - pagination.py:  the list pagination step
    - responses.py:   negotiation, error envelope, redirects, 501 stubs
    - helpers.py:     field access and formatting shared with templates
"""
