import os


class Config:

    # =====================
    # Network
    # =====================
    architecture = [2, 4, 3, 2, 1]

    # Initialisation
    weight_scale = 2.0              # Multiplier on the Xavier bound, 1.0 is textbook Glorot
    bias_scale = 0.1

    # =====================
    # Training
    # =====================
    learning_rate = 0.5
    min_learning_rate = 0.01
    max_learning_rate = 2.0

    # Weight change tracking
    history_depth = 10

    # =====================
    # Investigation
    # =====================
    architectures = [[2, 4, 3, 2, 1], [2, 2, 1]]
    num_trials = 20
    num_workers = 2
    worker_timeout = 300
    steps_per_trial = 10000
    curve_interval = 100
    plateau_tolerance = 0.01        # |final loss - 0.25| below this counts as stuck
    base_seed = 0

    log_path = "out/investigation.log"
    stats_path = "out/stats.csv"
    plot_path = "out/loss_curves.png"
    db_path = "out/trials.pkl"
    db_save_interval = 5

    # =====================
    # Logging
    # =====================
    log_level = os.getenv("XORNET_LOG_LEVEL", "INFO").upper()
