"""
Response processing layer.

This package contains:
- table: the ResponseTable result type and shared text helpers
- source_loader: discover, read and concatenate raw response files
- validation: drop rows lacking identifying fields
- coercion: type columns by recognized name
- options: build the multiple-choice lookup and decode selections
- pipeline: the process() entry point composing the stages above
"""
