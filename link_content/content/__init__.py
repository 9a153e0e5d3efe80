"""
Content normalization, metadata extraction and link content assembly.

The orchestrator lives in ``link_content.content.orchestrator``; it is not
imported here because transcript providers import the leaf modules of this
package.
"""
