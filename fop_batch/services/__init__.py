"""fop_batch.services -- batch executor and daily job runner."""
