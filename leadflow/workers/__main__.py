from leadflow.workers.runner import run_worker_process

if __name__ == "__main__":
    run_worker_process()
